from pydantic_settings import BaseSettings, SettingsConfigDict
import os
from dotenv import load_dotenv
load_dotenv()

class ClientConfig(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env.local", env_file_encoding="utf-8", extra="ignore")

    BACKEND_URL:str=os.getenv("BACKEND_URL","http://localhost:8000")
    SESSION_FILE:str=os.path.join(os.path.expanduser("~"),".chart_vision","session.json")
    EXPORT_DIR:str="output"
    LOG_LEVEL:str="INFO"

config=ClientConfig()
