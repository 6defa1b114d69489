from __future__ import annotations

import uuid


def generate_id(prefix: str) -> str:
    """Opaque record identifier, e.g. ``sale_3f2a...``."""
    return f"{prefix}_{uuid.uuid4().hex}"
