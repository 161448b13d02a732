from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]

_DEFAULT_HF_BASE_URL = "https://router.huggingface.co/hf-inference/models"


def _getenv(name: str, default: str) -> str:
    return os.environ.get(name, default).strip()


def _getint(name: str, default: int, *, minimum: int = 0) -> int:
    raw = _getenv(name, str(default))
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer (got {raw!r})") from None
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum} (got {value})")
    return value


def _getfloat(name: str, default: float) -> float:
    raw = _getenv(name, str(default))
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number (got {raw!r})") from None
    if value <= 0:
        raise ValueError(f"{name} must be positive (got {value})")
    return value


def _getbool(name: str, default: bool) -> bool:
    raw = _getenv(name, "true" if default else "false").lower()
    if raw in ("1", "true", "yes", "on"):
        return True
    if raw in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"{name} must be a boolean (got {raw!r})")


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    database_url: str | None
    redis_url: str | None

    # Identity provider
    allowed_email_domains: tuple[str, ...]
    jwt_public_key: str | None
    jwt_issuer: str
    jwt_audience: str

    # Inference
    huggingface_api_token: str | None
    huggingface_base_url: str
    embedding_model: str
    ai_detector_model: str
    content_model: str
    ollama_base_url: str
    ollama_model: str
    inference_timeout_seconds: float
    max_comparisons: int

    # Submissions
    max_submission_bytes: int

    ai_eval_rate_capacity: int

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"

    @property
    def huggingface_enabled(self) -> bool:
        return self.huggingface_api_token is not None


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    port_raw = _getenv("PORT", "8000")
    try:
        port = int(port_raw)
    except ValueError:
        raise ValueError(f"PORT must be an integer (got {port_raw!r})") from None

    jwt_public_key = _getenv("JWT_PUBLIC_KEY", "") or None
    if app_env_raw == "prod" and jwt_public_key is None:
        raise ValueError("JWT_PUBLIC_KEY is required when APP_ENV=prod")

    domains = tuple(
        d.strip().lower().lstrip("@")
        for d in _getenv("ALLOWED_EMAIL_DOMAINS", "").split(",")
        if d.strip()
    )

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=_getbool("LOG_JSON", False),
        port=port,
        database_url=_getenv("DATABASE_URL", "") or None,
        redis_url=_getenv("REDIS_URL", "") or None,
        allowed_email_domains=domains,
        jwt_public_key=jwt_public_key,
        jwt_issuer=_getenv("JWT_ISSUER", "gradeflow"),
        jwt_audience=_getenv("JWT_AUDIENCE", "gradeflow"),
        huggingface_api_token=_getenv("HUGGINGFACE_API_TOKEN", "") or None,
        huggingface_base_url=_getenv(
            "HUGGINGFACE_BASE_URL", _DEFAULT_HF_BASE_URL
        ).rstrip("/"),
        embedding_model=_getenv(
            "EMBEDDING_MODEL", "sentence-transformers/all-MiniLM-L6-v2"
        ),
        ai_detector_model=_getenv(
            "AI_DETECTOR_MODEL", "Hello-SimpleAI/chatgpt-detector-roberta"
        ),
        content_model=_getenv("CONTENT_MODEL", "HuggingFaceH4/zephyr-7b-beta"),
        ollama_base_url=_getenv("OLLAMA_BASE_URL", "http://localhost:11434").rstrip(
            "/"
        ),
        ollama_model=_getenv("OLLAMA_MODEL", "llama2"),
        inference_timeout_seconds=_getfloat("INFERENCE_TIMEOUT_SECONDS", 60.0),
        max_comparisons=_getint("MAX_COMPARISONS", 25),
        max_submission_bytes=_getint("MAX_SUBMISSION_BYTES", 1024 * 1024, minimum=1),
        ai_eval_rate_capacity=_getint("AI_EVAL_RATE_CAPACITY", 10, minimum=1),
    )


SETTINGS = load_settings()
