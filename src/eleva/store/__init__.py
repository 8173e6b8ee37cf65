from __future__ import annotations

import os
from functools import lru_cache

from google.cloud import firestore

from ..config import settings
from .common import DocumentNotFoundError
from .firestore_store import (
    AppFirestoreStore,
    ErrorLogRepository,
    ReviewRepository,
)

_DEFAULT_EMULATOR_HOST = "127.0.0.1:8080"


def _normalize_emulator_host(raw_host: str | None) -> str | None:
    """Normalise FIRESTORE_EMULATOR_HOST into a URL usable as api_endpoint.

    `localhost:8080` sem esquema recebe `http://`; vazio ou None significa
    "sem emulador".
    """

    host = (raw_host or "").strip()
    if not host:
        return None
    if host.startswith(("http://", "https://")):
        return host
    return f"http://{host}"


def _build_firestore_client() -> firestore.Client:
    """Build the Firestore client.

    - FIRESTORE_EMULATOR_HOST set: talk to the emulator.
    - Outside production the local emulator at 127.0.0.1:8080 is the default.
    - Otherwise connect to Cloud Firestore.
    """

    environment_name = (settings.environment or "").strip().lower()
    emulator_host = _normalize_emulator_host(
        settings.firestore_emulator_host
        or os.environ.get("FIRESTORE_EMULATOR_HOST")
        or (_DEFAULT_EMULATOR_HOST if environment_name != "production" else None)
    )
    project_id = settings.firestore_project_id or settings.gcp_project_id
    if emulator_host:
        # google-cloud-firestore switches to anonymous credentials when this is set.
        os.environ.setdefault(
            "FIRESTORE_EMULATOR_HOST",
            emulator_host.replace("http://", "").replace("https://", ""),
        )
        return firestore.Client(project=project_id, client_options={"api_endpoint": emulator_host})
    return firestore.Client(project=project_id)


@lru_cache(maxsize=1)
def get_store() -> AppFirestoreStore:
    """Return the process-wide store, creating the client on first use."""

    return AppFirestoreStore(client=_build_firestore_client())


__all__ = [
    "AppFirestoreStore",
    "DocumentNotFoundError",
    "ErrorLogRepository",
    "ReviewRepository",
    "get_store",
]
