"""Application settings loaded from environment variables."""
import os
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

# Load environment variables
load_dotenv()

PIPELINE_VERSION = "1.0.0"


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name, '')
    return int(value) if value.strip() else default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name, '')
    return float(value) if value.strip() else default


class Settings(BaseModel):
    """Runtime configuration for the extraction service."""

    # LLM providers
    llm_provider: str = Field(default="auto", description="auto, openai, google or ollama")
    openai_api_key: str = ""
    google_api_key: str = ""
    analyze_model: Optional[str] = None
    evaluation_model: Optional[str] = None
    refine_model: Optional[str] = None
    analyze_max_tokens: int = 8000
    evaluation_max_tokens: int = 8000
    refine_max_tokens: int = 16000

    # Capture
    capture_timeout_ms: int = 30000
    viewport_width: int = 1920
    viewport_height: int = 1080
    max_screenshots: int = 5

    # Storage (empty disables persistence)
    data_dir: str = "./data"

    # Sessions
    session_retention_seconds: float = 300.0
    session_grace_seconds: float = 30.0
    session_sweep_interval_seconds: float = 60.0
    stream_poll_interval_seconds: float = 0.5

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"

    pipeline_version: str = PIPELINE_VERSION

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the process environment (and .env)."""
        return cls(
            llm_provider=os.getenv('LLM_PROVIDER', 'auto').strip().lower() or 'auto',
            openai_api_key=os.getenv('OPENAI_API_KEY', ''),
            google_api_key=os.getenv('GEMINI_API_KEY', '') or os.getenv('GOOGLE_API_KEY', ''),
            analyze_model=os.getenv('ANALYZE_MODEL') or None,
            evaluation_model=os.getenv('EVALUATION_MODEL') or None,
            refine_model=os.getenv('REFINE_MODEL') or None,
            analyze_max_tokens=_env_int('ANALYZE_MAX_TOKENS', 8000),
            evaluation_max_tokens=_env_int('EVALUATION_MAX_TOKENS', 8000),
            refine_max_tokens=_env_int('REFINE_MAX_TOKENS', 16000),
            capture_timeout_ms=_env_int('CAPTURE_TIMEOUT_MS', 30000),
            max_screenshots=_env_int('MAX_SCREENSHOTS', 5),
            data_dir=os.getenv('DATA_DIR', './data'),
            session_retention_seconds=_env_float('SESSION_RETENTION_SECONDS', 300.0),
            session_grace_seconds=_env_float('SESSION_GRACE_SECONDS', 30.0),
            session_sweep_interval_seconds=_env_float('SESSION_SWEEP_INTERVAL_SECONDS', 60.0),
            stream_poll_interval_seconds=_env_float('STREAM_POLL_INTERVAL_SECONDS', 0.5),
            host=os.getenv('HOST', '0.0.0.0'),
            port=_env_int('PORT', 8000),
            log_level=os.getenv('LOG_LEVEL', 'INFO').upper(),
        )


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings.from_env()
