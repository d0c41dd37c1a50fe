import os
from dotenv import load_dotenv
import logging

load_dotenv('.env.local', override=True)

logger = logging.getLogger(__name__)

#=========================
#CONFIG - AI GATEWAY
#=========================
AI_GATEWAY_URL = os.getenv("AI_GATEWAY_URL", "https://ai.gateway.lovable.dev/v1/chat/completions")
AI_GATEWAY_API_KEY = os.getenv("AI_GATEWAY_API_KEY")
if not AI_GATEWAY_API_KEY:
    logger.warning("AI_GATEWAY_API_KEY not set - chart analysis will be unavailable")

VISION_MODEL = os.getenv("VISION_MODEL", "google/gemini-2.5-flash")
AI_GATEWAY_TIMEOUT = float(os.getenv("AI_GATEWAY_TIMEOUT", "60"))

#=========================
#CONFIG - PERSISTENCE
#=========================
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./chart_vision.db")
STORAGE_DIR = os.getenv("STORAGE_DIR", "storage")
PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "http://127.0.0.1:8000").rstrip("/")

#=========================
#CONFIG - SECURITY
#=========================
JWT_SECRET = os.getenv("JWT_SECRET", "dev-secret-change-me")
JWT_ALG = "HS256"
JWT_EXPIRE_MIN = int(os.getenv("JWT_EXPIRE_MIN", str(60 * 24 * 7)))  # 7 days
if JWT_SECRET == "dev-secret-change-me":
    logger.warning("JWT_SECRET not set - using the development secret")

ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "*").split(",")
REQUIRE_HTTPS = os.getenv("REQUIRE_HTTPS", "false").lower() == "true"
