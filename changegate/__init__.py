"""Change lifecycle and quality-gate orchestration."""

__version__ = "0.1.0"
