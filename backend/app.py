"""
Chart Vision FastAPI Application
Relays chart images to a vision model and stores per-user analysis history
"""
import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from fastapi import (
    Depends,
    FastAPI,
    File,
    Form,
    HTTPException,
    Request,
    Response,
    UploadFile,
    status,
)
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import ValidationError
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException
from dotenv import load_dotenv

from backend.analyze import ParseFailure, extract_analysis, fallback_analysis
from backend.auth import authenticate, create_token, get_current_user, register_user
from backend.config import ALLOWED_ORIGINS, REQUIRE_HTTPS, STORAGE_DIR
from backend.database import User, get_db
from backend.models import (
    AnalysisResult,
    AnalyzeChartRequest,
    AuthResponse,
    ChartAnalysisOut,
    LoginRequest,
    SignupRequest,
    UserOut,
)
from backend.persistence import delete_analysis, get_analysis, list_analyses, persist_analysis
from backend.storage import STORAGE_ROUTE, ObjectStorage, get_storage
from backend.vision_helper import VisionGateway, get_vision_gateway

load_dotenv()

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Chart Vision - AI Chart Analysis API",
    description="Market bias analysis for trading chart screenshots",
    version="1.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# =============================
# MIDDLEWARE
# =============================

app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in ALLOWED_ORIGINS if origin.strip()],
    allow_credentials=False,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
    max_age=3600,
)


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    """Add security headers to all responses"""
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    if REQUIRE_HTTPS:
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    return response


Path(STORAGE_DIR).mkdir(parents=True, exist_ok=True)
app.mount(STORAGE_ROUTE, StaticFiles(directory=STORAGE_DIR), name="storage")

# =============================
# PUBLIC ENDPOINTS (No auth required)
# =============================

@app.get("/api/health")
async def health_check():
    """Health check endpoint - no authentication required"""
    return {
        "status": "ok",
        "service": "chart-vision API",
        "version": "1.0",
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@app.get("/")
async def root():
    return {
        "status": "ok",
        "service": "chart-vision API",
        "docs": "/docs",
        "version": "1.0"
    }


@app.post("/api/analyze-chart")
async def analyze_chart(
    request: AnalyzeChartRequest,
    gateway: VisionGateway = Depends(get_vision_gateway),
):
    """
    Analyze a chart image with the vision model
    Body: {"image": "<data URL>"}

    An answer that cannot be parsed yields the fallback result with status 200.
    """
    if not request.image:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No image provided")

    try:
        answer = await gateway.query_chart(request.image)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error in analyze_chart: {type(e).__name__}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e) or "Unknown error occurred"
        )

    logger.info(f"AI response: {answer}")

    parsed = extract_analysis(answer)
    if isinstance(parsed, ParseFailure):
        logger.error(f"Failed to parse AI response as JSON: {parsed.error}")
        logger.error(f"Raw response: {parsed.raw}")
        return fallback_analysis()

    return parsed.payload


# =============================
# AUTH ENDPOINTS
# =============================

@app.post("/api/auth/signup", response_model=AuthResponse)
def signup(payload: SignupRequest, db: Session = Depends(get_db)):
    user = register_user(db, payload.email, payload.password)
    return AuthResponse(token=create_token(user), user=UserOut.model_validate(user))


@app.post("/api/auth/login", response_model=AuthResponse)
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    user = authenticate(db, payload.email, payload.password)
    return AuthResponse(token=create_token(user), user=UserOut.model_validate(user))


@app.get("/api/auth/me", response_model=UserOut)
def me(current_user: User = Depends(get_current_user)):
    return current_user


# =============================
# PROTECTED ENDPOINTS (Auth required)
# =============================

@app.post("/api/analyses", response_model=ChartAnalysisOut, status_code=status.HTTP_201_CREATED)
def save_analysis(
    image: UploadFile = File(...),
    bias: str = Form(...),
    confidence: float = Form(...),
    reasons: str = Form("[]"),
    best_move: str = Form(...),
    parse_failed: bool = Form(False),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage),
):
    """
    Store a chart image and its analysis for the current user
    Requires: Authorization: Bearer <token>
    """
    if not image.content_type or not image.content_type.startswith("image/"):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="File must be an image")

    try:
        result = AnalysisResult(
            bias=bias,
            confidence=confidence,
            reasons=json.loads(reasons),
            best_move=best_move,
            parse_failed=parse_failed,
        )
    except (ValueError, ValidationError) as e:
        logger.warning(f"Validation error in save_analysis: {e}")
        raise HTTPException(status_code=422, detail="Invalid analysis fields")

    data = image.file.read()
    return persist_analysis(db, storage, data, image.filename or "", result, current_user.id)


@app.get("/api/analyses", response_model=list[ChartAnalysisOut])
def history(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """All analyses of the current user, newest first"""
    return list_analyses(db, current_user.id)


@app.get("/api/analyses/{analysis_id}", response_model=ChartAnalysisOut)
def history_item(
    analysis_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    record = get_analysis(db, current_user.id, analysis_id)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Analysis not found")
    return record


@app.delete("/api/analyses/{analysis_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_analysis(
    analysis_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not delete_analysis(db, current_user.id, analysis_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Analysis not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================
# ERROR HANDLERS
# =============================

@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    """Render every HTTP error as {"error": message}"""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Handle validation errors gracefully"""
    logger.warning(f"Validation error: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Invalid request"},
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected errors gracefully"""
    logger.exception(f"Unexpected error: {type(exc).__name__}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        app,
        host="127.0.0.1",
        port=8000,
        log_level="info"
    )
