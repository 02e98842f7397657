"""Startup-time helpers for safe config logging."""

from payrelay.common.config import Settings
from payrelay.common.logging import logger


SECRET_MARKERS = ("token", "secret", "password", "key")


def _safe_value(name: str, value: object) -> object:
    """Redact values whose field name looks like a credential."""

    if value in (None, ""):
        return "<unset>"
    if any(marker in name.lower() for marker in SECRET_MARKERS):
        return "<redacted>"
    return value


def startup_config(settings: Settings, fields: list[str]) -> dict[str, object]:
    config: dict[str, object] = {"service": settings.service_name}
    for name in fields:
        config[name] = _safe_value(name, getattr(settings, name))
    return config


def log_startup_config(settings: Settings, fields: list[str]) -> None:
    """Log selected settings for quick troubleshooting."""

    logger.info("startup_config=%s", startup_config(settings, fields))
