"""Core helpers shared across the API layer."""

from .security import create_access_token, decode_access_token

__all__ = ["create_access_token", "decode_access_token"]
