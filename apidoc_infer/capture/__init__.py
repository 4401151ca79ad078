"""Runtime capture store (observed requests and responses)."""

from .repository import CapturedRequest, CapturedResponse, CapturedResponseRepository

__all__ = ["CapturedRequest", "CapturedResponse", "CapturedResponseRepository"]
