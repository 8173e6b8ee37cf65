"""Logged-error store (caderno de erros) and list filtering."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from datetime import date
from typing import Any, Literal, NoReturn

from pydantic import BaseModel, ValidationError

from .dates import local_today
from .errors import InvalidInputError, NoActivePlanError, NotFoundError, PersistenceError
from .logging import logger
from .models.error_log import ErrorRevision, LoggedError
from .reviews import Notifier, log_notice
from .store import DocumentNotFoundError, ErrorLogRepository

StatusFilter = Literal["all", "resolved", "pending"]


class ErrorLogStore:
    """Logged errors of the active study plan."""

    def __init__(
        self,
        repository: ErrorLogRepository,
        *,
        notify: Notifier | None = None,
        today_provider: Callable[[], date] | None = None,
    ) -> None:
        self._repository = repository
        self._notify = notify or log_notice
        self._today = today_provider or local_today
        self.errors: list[LoggedError] = []
        self.study_plan_id: str | None = None
        self.loading = False

    def _fail(self, event: str, exc: Exception, message: str, **fields: Any) -> NoReturn:
        logger.error(event, error=repr(exc), **fields)
        self._notify(message)
        raise PersistenceError(message) from exc

    def today(self) -> date:
        return self._today()

    def get(self, error_id: str) -> LoggedError | None:
        return next((e for e in self.errors if e.id == error_id), None)

    def _require(self, error_id: str) -> LoggedError:
        logged = self.get(error_id)
        if logged is None:
            raise NotFoundError("Erro não encontrado.")
        return logged

    def fetch(self, study_plan_id: str) -> list[LoggedError]:
        self.loading = True
        try:
            errors = self._repository.list_errors(study_plan_id)
        except Exception as exc:
            self.loading = False
            self._fail(
                "error_log_fetch_failed",
                exc,
                "Não foi possível carregar o caderno de erros.",
                study_plan_id=study_plan_id,
            )
        self.errors = list(errors)
        self.study_plan_id = study_plan_id
        self.loading = False
        return list(self.errors)

    def add(self, data: Mapping[str, Any] | BaseModel) -> LoggedError:
        if not self.study_plan_id:
            raise NoActivePlanError("Plano de estudo ativo não encontrado.")
        payload = data.model_dump() if isinstance(data, BaseModel) else dict(data)
        if not payload.get("discipline_id"):
            raise InvalidInputError("discipline_id is required to log an error.")
        if not payload.get("date"):
            payload["date"] = self.today()
        try:
            created = self._repository.create_error(self.study_plan_id, payload)
        except ValidationError as exc:
            logger.info("error_log_create_rejected", error=repr(exc))
            raise InvalidInputError("Dados inválidos para o erro.") from exc
        except Exception as exc:
            self._fail("error_log_create_failed", exc, "Falha ao adicionar erro.")
        self.errors = [*self.errors, created]
        return created

    def update(self, error_id: str, changes: Mapping[str, Any]) -> LoggedError:
        self._require(error_id)
        try:
            updated = self._repository.update_error(error_id, dict(changes))
        except DocumentNotFoundError as exc:
            self.errors = [e for e in self.errors if e.id != error_id]
            raise NotFoundError("Erro não encontrado.") from exc
        except ValidationError as exc:
            logger.info("error_log_update_rejected", error_id=error_id, error=repr(exc))
            raise InvalidInputError("Dados inválidos para o erro.") from exc
        except Exception as exc:
            self._fail("error_log_update_failed", exc, "Falha ao atualizar erro.", error_id=error_id)
        self.errors = [updated if e.id == error_id else e for e in self.errors]
        return updated

    def remove(self, error_id: str) -> None:
        self._require(error_id)
        try:
            self._repository.delete_error(error_id)
        except Exception as exc:
            self._fail("error_log_delete_failed", exc, "Falha ao remover erro.", error_id=error_id)
        self.errors = [e for e in self.errors if e.id != error_id]

    def toggle_resolved(self, error_id: str) -> tuple[LoggedError, bool]:
        """Flip `resolved` and return the updated error plus whether it became resolved."""

        current = self._require(error_id)
        resolving = not current.resolved
        updated = self.update(error_id, {"resolved": resolving})
        return updated, resolving

    def add_revision(self, error_id: str, revision: ErrorRevision) -> LoggedError:
        current = self._require(error_id)
        revisions = [*current.revisions, revision]
        return self.update(error_id, {"revisions": revisions})


def filter_errors(
    errors: Iterable[LoggedError],
    *,
    status: StatusFilter = "all",
    discipline_id: str | None = None,
    query: str | None = None,
) -> list[LoggedError]:
    """Filter the error list the way the error-log page does, newest first."""

    needle = (query or "").strip().lower()
    selected: list[LoggedError] = []
    for logged in errors:
        if status == "resolved" and not logged.resolved:
            continue
        if status == "pending" and logged.resolved:
            continue
        if discipline_id and logged.discipline_id != discipline_id:
            continue
        if needle and needle not in logged.subject.lower() and needle not in logged.description.lower():
            continue
        selected.append(logged)
    selected.sort(key=lambda e: e.date, reverse=True)
    return selected
