from . import session_service

__all__ = [
    "session_service",
]
