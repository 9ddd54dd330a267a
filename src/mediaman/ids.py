from __future__ import annotations

import uuid


def new_id() -> str:
    """Return a fresh collision-resistant identifier (UUID4, hex form)."""
    return uuid.uuid4().hex
