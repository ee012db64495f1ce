"""Prefixed ID generation utility."""

import uuid


def generate_id(prefix: str, length: int = 16) -> str:
    """Generate a prefixed unique ID.

    Args:
        prefix: The prefix (e.g., "azd_").
        length: Number of hex characters after the prefix.

    Returns:
        A string like "azd_a1b2c3d4e5f6a7b8".
    """
    return f"{prefix}{uuid.uuid4().hex[:length]}"
