"""Structured logging setup.

Logs saem em JSON (structlog) para o Cloud Logging. Chaves com cara de
credencial são mascaradas e o texto livre do aluno (anotações, descrição de
erros, conteúdo de revisões) nunca é registrado, só o seu tamanho.
"""

from typing import Any

import logging
import structlog
from structlog import contextvars as structlog_contextvars
from .config import settings


_CREDENTIAL_HINTS = ("api_key", "token", "secret", "authorization", "password", "credential", "dsn")
_FREE_TEXT_KEYS = frozenset({"content", "description", "notes"})


def _mask(raw: object) -> str:
    text = "" if raw is None else str(raw).strip()
    if len(text) <= 8:
        return "***"
    return f"{text[:4]}…{text[-4:]}"


def _scrub(key: str, value: Any) -> Any:
    lowered = key.lower()
    if isinstance(value, dict):
        return {k: _scrub(str(k), v) for k, v in value.items()}
    if any(hint in lowered for hint in _CREDENTIAL_HINTS):
        return _mask(value)
    if lowered in _FREE_TEXT_KEYS and isinstance(value, str):
        return f"<{len(value)} chars>"
    return value


def _scrub_event_dict(
    logger: structlog.types.WrappedLogger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Mask credentials and drop user-written text before rendering."""

    return {key: _scrub(key, value) for key, value in event_dict.items()}


def _add_environment(
    logger: structlog.types.WrappedLogger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    event_dict.setdefault("environment", settings.environment)
    return event_dict


def configure_logging() -> None:
    """Route stdlib logging through one handler and render structlog events as JSON."""

    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    # uvicorn installs its own handlers; replace them so every line is JSON.
    logging.basicConfig(level=level, format="%(message)s", handlers=[logging.StreamHandler()], force=True)

    structlog.configure(
        processors=[
            structlog_contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            _add_environment,
            _scrub_event_dict,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    if settings.sentry_dsn:
        _init_sentry(settings.sentry_dsn)


def _init_sentry(dsn: str) -> None:
    """Forward ERROR records to Sentry when the optional extra is installed."""

    try:
        import sentry_sdk
        from sentry_sdk.integrations.logging import LoggingIntegration
    except ImportError:
        logger.warning("sentry_unavailable", reason="install eleva-backend[sentry]")
        return
    sentry_sdk.init(
        dsn=dsn,
        environment=settings.environment,
        integrations=[LoggingIntegration(level=logging.INFO, event_level=logging.ERROR)],
    )


logger = structlog.get_logger()
