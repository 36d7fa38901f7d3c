"""CLI command groups for nsloader."""

__all__ = [
    "config",
]
