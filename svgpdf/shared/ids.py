"""ID generation helpers."""

import uuid


def generate_id(prefix: str = "") -> str:
    """Generate a short unique id, optionally prefixed."""
    value = uuid.uuid4().hex[:16]
    return f"{prefix}_{value}" if prefix else value


def generate_request_id() -> str:
    return generate_id("req")
