from datetime import datetime, timezone
from typing import Literal, Optional
import re
from pydantic import BaseModel, ConfigDict, Field, field_validator

#=========================
#REQUEST / RESPONSE MODELS - WITH VALIDATION
#=========================
EMAIL_REGEX = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

Bias = Literal["bullish", "bearish", "ranging"]
BIAS_VALUES = ("bullish", "bearish", "ranging")


class AnalyzeChartRequest(BaseModel):
    # Optional so a missing image is answered with a 400, not a 422
    image: Optional[str] = None


class AnalysisResult(BaseModel):
    bias: Bias
    confidence: float = Field(..., allow_inf_nan=False, description="Intended range 0-100")
    reasons: list[str] = Field(default_factory=list)
    best_move: str
    parse_failed: bool = False


class ChartAnalysisOut(AnalysisResult):
    """Persisted analysis as returned by the history endpoints"""
    model_config = ConfigDict(from_attributes=True)

    id: str
    image_url: str
    created_at: datetime

    @field_validator('created_at')
    @classmethod
    def assume_utc(cls, v):
        # SQLite hands back naive datetimes; they were written as UTC
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class SignupRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=254)
    password: str = Field(..., min_length=6, max_length=128)

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        v = v.strip().lower()
        if not re.match(EMAIL_REGEX, v):
            raise ValueError('Invalid email address')
        return v


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=254)
    password: str = Field(..., min_length=1, max_length=128)

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v):
        return v.strip().lower()


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str


class AuthResponse(BaseModel):
    token: str
    user: UserOut
