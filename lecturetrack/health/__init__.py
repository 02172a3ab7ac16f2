"""Health check module."""

from lecturetrack.health.router import router


__all__ = ["router"]
