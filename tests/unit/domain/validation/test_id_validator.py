import pytest

from changegate.domain.errors import InvalidIdError
from changegate.domain.validation.id_validator import ensure_safe_id


def test_trims_whitespace() -> None:
    assert ensure_safe_id("  add-auth ") == "add-auth"


@pytest.mark.parametrize("bad", ["", "   ", "..", "../etc", "a/b", "a\\b", "x..y"])
def test_rejects_unsafe_ids(bad: str) -> None:
    with pytest.raises(InvalidIdError):
        ensure_safe_id(bad)


def test_invalid_id_error_is_value_error() -> None:
    with pytest.raises(ValueError):
        ensure_safe_id("../x")
