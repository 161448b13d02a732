from __future__ import annotations

import pytest

from gradeflow.core.config import load_settings

# ---- valid values ----


def test_load_settings_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "APP_ENV",
        "LOG_LEVEL",
        "HUGGINGFACE_API_TOKEN",
        "MAX_COMPARISONS",
        "OLLAMA_MODEL",
        "JWT_ISSUER",
        "MAX_SUBMISSION_BYTES",
    ):
        monkeypatch.delenv(name, raising=False)
    settings = load_settings()
    assert settings.app_env == "dev"
    assert settings.log_level == "info"
    assert settings.huggingface_api_token is None
    assert settings.huggingface_enabled is False
    assert settings.max_comparisons == 25
    assert settings.ollama_model == "llama2"
    assert settings.jwt_issuer == "gradeflow"
    assert settings.max_submission_bytes == 1024 * 1024


def test_load_settings_respects_env_vars(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APP_ENV", "prod")
    monkeypatch.setenv("LOG_LEVEL", "error")
    monkeypatch.setenv("JWT_PUBLIC_KEY", "-----BEGIN PUBLIC KEY-----")
    monkeypatch.setenv("HUGGINGFACE_API_TOKEN", "hf_abc")
    monkeypatch.setenv("INFERENCE_TIMEOUT_SECONDS", "12.5")
    settings = load_settings()
    assert settings.is_prod
    assert settings.log_level == "error"
    assert settings.huggingface_enabled
    assert settings.inference_timeout_seconds == 12.5


def test_load_settings_normalizes_case_and_whitespace(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("APP_ENV", "  TEST  ")
    monkeypatch.setenv("LOG_LEVEL", "  Warning ")
    settings = load_settings()
    assert settings.app_env == "test"
    assert settings.log_level == "warning"


def test_allowed_email_domains_are_split_and_lowercased(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("ALLOWED_EMAIL_DOMAINS", "@VIT.ac.in, @vitstudent.ac.in ,")
    settings = load_settings()
    assert settings.allowed_email_domains == ("vit.ac.in", "vitstudent.ac.in")


def test_empty_optional_urls_mean_not_configured(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("DATABASE_URL", "")
    monkeypatch.setenv("REDIS_URL", "   ")
    settings = load_settings()
    assert settings.database_url is None
    assert settings.redis_url is None


# ---- invalid values ----


@pytest.mark.parametrize(
    "name,value,message",
    [
        ("APP_ENV", "staging", "APP_ENV must be dev|test|prod"),
        ("LOG_LEVEL", "verbose", "LOG_LEVEL must be"),
        ("PORT", "eighty", "PORT must be an integer"),
        ("MAX_COMPARISONS", "many", "MAX_COMPARISONS must be an integer"),
        ("INFERENCE_TIMEOUT_SECONDS", "0", "INFERENCE_TIMEOUT_SECONDS must be positive"),
        ("LOG_JSON", "maybe", "LOG_JSON must be a boolean"),
    ],
)
def test_load_settings_rejects_invalid_values(
    monkeypatch: pytest.MonkeyPatch, name: str, value: str, message: str
) -> None:
    monkeypatch.setenv(name, value)
    with pytest.raises(ValueError, match=message):
        load_settings()


def test_prod_requires_jwt_public_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APP_ENV", "prod")
    monkeypatch.delenv("JWT_PUBLIC_KEY", raising=False)
    with pytest.raises(ValueError, match="JWT_PUBLIC_KEY is required when APP_ENV=prod"):
        load_settings()


def test_dev_runs_without_jwt_public_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APP_ENV", "dev")
    monkeypatch.delenv("JWT_PUBLIC_KEY", raising=False)
    assert load_settings().jwt_public_key is None
