from .id_validator import ensure_safe_id

__all__ = ["ensure_safe_id"]
