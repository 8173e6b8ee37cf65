"""Domain exceptions raised by the stores and mapped to HTTP errors in `main`."""

from __future__ import annotations


class ElevaError(Exception):
    """Base class carrying a message that is safe to show to the user."""

    status_code = 400

    def __init__(self, user_message: str) -> None:
        super().__init__(user_message)
        self.user_message = user_message


class PersistenceError(ElevaError):
    """The persistence backend failed (network, permission, validation)."""

    status_code = 503


class InvalidInputError(ElevaError):
    status_code = 422


class InvalidTransitionError(ElevaError):
    """A completed review was asked to change state again."""

    status_code = 409


class NoActivePlanError(ElevaError):
    """A write was attempted before any study plan was loaded."""

    status_code = 409


class NotFoundError(ElevaError):
    status_code = 404
