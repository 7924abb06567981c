"""Verification of provider-issued tokens and the explicit session context."""

from .schemas import SessionUser


__all__ = ["SessionUser"]
