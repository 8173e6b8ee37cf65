from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel

from ..dates import format_local_date


class DocumentNotFoundError(LookupError):
    """Raised when an update targets a document that does not exist."""


def to_document_value(value: Any) -> Any:
    """Convert a Python value into something Firestore stores verbatim.

    Datas de calendário viram `YYYY-MM-DD` (nunca timestamp) para que a
    comparação com "hoje" continue sendo por dia local.
    """

    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return format_local_date(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, BaseModel):
        return {k: to_document_value(v) for k, v in value.model_dump().items()}
    if isinstance(value, Mapping):
        return {str(k): to_document_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_document_value(v) for v in value]
    return value


def to_document(data: Mapping[str, Any]) -> dict[str, Any]:
    return {str(key): to_document_value(value) for key, value in data.items()}


def normalize_weights(raw: Any) -> dict[str, float]:
    """Coerce a stored weight mapping into `{name: float}`, dropping garbage.

    Zero and negative weights are kept here; the rotation picker decides
    what is selectable.
    """

    if not isinstance(raw, Mapping):
        return {}
    weights: dict[str, float] = {}
    for name, weight in raw.items():
        try:
            weights[str(name)] = float(weight)
        except (TypeError, ValueError):
            continue
    return weights
