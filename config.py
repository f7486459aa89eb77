import os
from dotenv import load_dotenv
from pathlib import Path

load_dotenv()

basedir = Path(__file__).resolve().parent


def _env_flag(name: str, default: bool = False) -> bool:
    """Interpret typical truthy strings from environment variables."""
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.environ.get(name, default))
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.environ.get(name, default))
    except ValueError:
        return default


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "fallback-dev-key")
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", f"sqlite:///{basedir / 'instance' / 'academy.sqlite'}")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SESSION_COOKIE_HTTPONLY = True
    REMEMBER_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"  # adjust to Strict if needed
    # Default to secure cookies only when explicitly requested so local dev/tests keep working.
    SESSION_COOKIE_SECURE = _env_flag("SESSION_COOKIE_SECURE", default=False)
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Day boundary for streaks. An IANA zone name, e.g. "Europe/Berlin".
    STREAK_TIMEZONE = os.getenv("STREAK_TIMEZONE", "UTC")

    # Labs
    CHALLENGE_ADVANCE_DELAY = _env_float("CHALLENGE_ADVANCE_DELAY", 2.0)
    CRACK_TICK_INTERVAL = _env_float("CRACK_TICK_INTERVAL", 0.1)
    CRACK_MAX_STEPS_PER_REQUEST = _env_int("CRACK_MAX_STEPS_PER_REQUEST", 5000)
    CRACK_MAX_LENGTH = _env_int("CRACK_MAX_LENGTH", 16)

    # AI tutor proxy (any OpenAI-compatible chat completions endpoint)
    AI_API_URL = os.getenv("AI_API_URL", "https://api.deepseek.com/v1/chat/completions")
    AI_API_KEY = os.getenv("AI_API_KEY")
    AI_MODEL = os.getenv("AI_MODEL", "deepseek-chat")
    AI_TIMEOUT = _env_float("AI_TIMEOUT", 30.0)
    AI_HISTORY_LIMIT = _env_int("AI_HISTORY_LIMIT", 20)
