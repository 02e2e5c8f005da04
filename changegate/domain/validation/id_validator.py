"""
Identifier validation for change, spec and review ids.

Ids become path components in the record store, so anything that could
escape its directory is rejected.
"""

from changegate.domain.errors import InvalidIdError


def ensure_safe_id(raw_id: str) -> str:
    """
    Trim and validate an identifier.

    Args:
        raw_id: Identifier from user input

    Returns:
        The trimmed identifier

    Raises:
        InvalidIdError: If the id is empty or contains '..', '/' or '\\'

    Examples:
        >>> ensure_safe_id(" add-auth ")
        'add-auth'
        >>> ensure_safe_id("../etc")
        InvalidIdError: Invalid id: ../etc
    """
    trimmed = (raw_id or "").strip()
    if not trimmed or ".." in trimmed or "/" in trimmed or "\\" in trimmed:
        raise InvalidIdError(f"Invalid id: {raw_id}")
    return trimmed
