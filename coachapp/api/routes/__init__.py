from . import (
    coaches,
    sessions,
)

__all__ = [
    "coaches",
    "sessions",
]
