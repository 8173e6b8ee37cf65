from typing import Annotated
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import AliasChoices, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic_settings.sources.types import NoDecode


DEFAULT_TIMEZONE = "America/Sao_Paulo"
DEFAULT_AUTO_REVIEW_INTERVALS: tuple[int, ...] = (1, 7, 15, 30)


def _split_csv(raw: object) -> list[object] | None:
    """Split comma separated env input into candidates (None when not iterable)."""

    if raw is None:
        return []
    if isinstance(raw, str):
        return list(raw.split(","))
    try:
        return list(raw)  # type: ignore[call-overload]
    except TypeError:
        return None


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Configuração da aplicação lida do ambiente (ou do `.env`).
    - timezone: fuso usado para decidir o que é "hoje" nas revisões
    - *_offset_days: deslocamentos usados no reagendamento
    - auto_review_intervals: intervalos D+N do agendamento automático
    """

    environment: str = Field(
        default="development",
        description="Runtime environment / Ambiente de execução",
    )
    timezone: str = Field(
        default=DEFAULT_TIMEZONE,
        description="IANA timezone used to compute the local 'today' / Fuso horário local",
        validation_alias=AliasChoices("eleva_timezone", "timezone"),
    )

    # --- Firestore ---
    firestore_project_id: str | None = Field(
        default=None,
        description="Firestore project id / Projeto do Firestore",
    )
    firestore_emulator_host: str | None = Field(
        default=None,
        description="Firestore emulator host (host:port) / Host do emulador",
    )
    gcp_project_id: str | None = Field(
        default=None,
        description="Fallback GCP project id",
        validation_alias=AliasChoices("gcp_project_id", "google_cloud_project"),
    )

    # --- Review scheduling ---
    failed_review_offset_days: int = Field(
        default=1,
        ge=0,
        description="Days until a failed review resurfaces / Dias até a revisão após erro",
    )
    postponed_review_offset_days: int = Field(
        default=1,
        ge=0,
        description="Days a postponed review is pushed forward / Dias ao adiar uma revisão",
    )
    error_review_offset_days: int = Field(
        default=7,
        ge=0,
        description="Days until the follow-up review of a resolved error / Dias até revisar um erro resolvido",
    )
    auto_review_intervals: Annotated[tuple[int, ...], NoDecode] = Field(
        default=DEFAULT_AUTO_REVIEW_INTERVALS,
        description="Comma separated D+N intervals for topic auto-scheduling / Intervalos D+N",
    )

    allowed_cors_origins: Annotated[tuple[str, ...], NoDecode] = Field(
        default=(),
        description="Comma separated CORS origins / Origens permitidas no CORS",
        validation_alias=AliasChoices("allowed_cors_origins", "cors_allowed_origins"),
    )
    log_level: str = Field(
        default="INFO",
        description="Root log level (DEBUG/INFO/WARNING/ERROR) / Nível de log",
    )
    sentry_dsn: str | None = Field(
        default=None, description="Sentry DSN (enable if set)"
    )

    # --- Strict mode ---
    strict_mode: bool = Field(
        default=True,
        description="Fail fast on missing/invalid configuration (disable only for tests)",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        case_sensitive=False,
    )

    @field_validator("timezone", mode="after")
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        """Reject timezone names that zoneinfo cannot resolve.

        Um fuso inválido faria "hoje" cair silenciosamente em UTC, que é
        exatamente o erro de data que as revisões não podem cometer.
        """

        name = (value or "").strip()
        if not name:
            raise ValueError("ELEVA_TIMEZONE must be a non-empty IANA timezone name")
        try:
            ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {name!r}") from exc
        return name

    @field_validator("auto_review_intervals", mode="before")
    @classmethod
    def _normalise_auto_review_intervals(
        cls, raw_intervals: object
    ) -> tuple[int, ...] | object:  # pragma: no cover - pydantic handles typing
        """Convert env input into a sorted, deduplicated tuple of positive days."""

        candidates = _split_csv(raw_intervals)
        if candidates is None:
            return raw_intervals

        days: set[int] = set()
        for candidate in candidates:
            text = str(candidate).strip()
            if not text:
                continue
            try:
                value = int(text)
            except ValueError as exc:
                raise ValueError(f"Invalid review interval: {text!r}") from exc
            if value <= 0:
                raise ValueError("Review intervals must be positive day counts")
            days.add(value)
        if not days:
            return DEFAULT_AUTO_REVIEW_INTERVALS
        return tuple(sorted(days))

    @field_validator("allowed_cors_origins", mode="before")
    @classmethod
    def _normalise_allowed_cors_origins(
        cls, raw_origins: object
    ) -> tuple[str, ...] | object:  # pragma: no cover - pydantic handles typing
        """Convert environment input into a deduplicated tuple of origins."""

        candidates = _split_csv(raw_origins)
        if candidates is None:
            return raw_origins

        normalised: list[str] = []
        seen: set[str] = set()
        for candidate in candidates:
            if not isinstance(candidate, str):
                continue
            trimmed = candidate.strip()
            if not trimmed or trimmed in seen:
                continue
            seen.add(trimmed)
            normalised.append(trimmed)

        return tuple(normalised)

    @model_validator(mode="after")
    def _require_project_in_production(self) -> "Settings":
        """Production without a Firestore project would talk to the emulator default."""

        environment_name = (self.environment or "").strip().lower()
        if self.strict_mode and environment_name == "production":
            if not (self.firestore_project_id or self.gcp_project_id):
                raise ValueError(
                    "FIRESTORE_PROJECT_ID must be set when STRICT_MODE=true in production"
                )
        return self


settings = Settings()
