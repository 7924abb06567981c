"""Liveness and readiness checks."""

from .router import router


__all__ = ["router"]
