"""ID generation helpers.

Document IDs use only path-safe characters so they can be used directly as
Firestore document names. The prefix tells entity kinds apart in logs.
"""

from __future__ import annotations

import uuid


def generate_review_id() -> str:
    return f"rv:{uuid.uuid4().hex}"


def generate_error_id() -> str:
    return f"er:{uuid.uuid4().hex}"
