import os
import logging
from pydantic import BaseModel, Field
from typing import List, Optional
from dotenv import load_dotenv

load_dotenv()

class AISettings(BaseModel):
    openrouter_api_key: Optional[str] = Field(default=os.getenv("OPENROUTER_API_KEY"))
    base_url: str = Field(default=os.getenv("OPENROUTER_URL", "https://openrouter.ai/api/v1/chat/completions"))
    feedback_model: str = Field(default=os.getenv("AI_FEEDBACK_MODEL", "anthropic/claude-3.7-sonnet"))
    # Study plans always go to one fixed model, independent of the feedback model
    study_plan_model: str = Field(default=os.getenv("AI_STUDY_PLAN_MODEL", "anthropic/claude-3.7-sonnet"))
    kill_switch: bool = Field(default=os.getenv("AI_KILL_SWITCH", "false").lower() == "true")
    timeout_seconds: float = float(os.getenv("AI_TIMEOUT_SECONDS", "60"))
    temperature: float = float(os.getenv("AI_TEMPERATURE", "0.2"))

class Config(BaseModel):
    app_name: str = "ResumeMatch"
    environment: str = os.getenv("APP_ENV", "development")
    api_prefix: str = "/api"
    version: str = "1.0.0"
    request_id_header: str = "X-Request-ID"
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # Key-value store (SQL backed)
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./resumematch.db")

    # Object storage
    storage_root: str = os.getenv("STORAGE_ROOT", "./storage")
    max_upload_mb: int = int(os.getenv("MAX_UPLOAD_MB", "20"))

    # First-page preview rendering
    raster_scale: float = float(os.getenv("RASTER_SCALE", "4.0"))

    ai: AISettings = AISettings()

    cors_origins: List[str] = Field(
        default_factory=lambda: [
            o.strip()
            for o in os.getenv(
                "CORS_ORIGINS",
                "http://localhost:5173,http://127.0.0.1:5173,"
                "http://localhost:3000,http://127.0.0.1:3000",
            ).split(",")
            if o.strip()
        ]
    )

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024

settings = Config()

# --- Startup Validation for Production ---
_logger = logging.getLogger(__name__)
if settings.environment == "production" and not settings.ai.openrouter_api_key:
    raise RuntimeError(
        "FATAL: OPENROUTER_API_KEY must be set for production. Set it as an environment variable."
    )
elif not settings.ai.openrouter_api_key:
    _logger.warning("OPENROUTER_API_KEY is not set; analysis and study plans will fail.")
