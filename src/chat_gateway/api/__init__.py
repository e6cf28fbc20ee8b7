"""
HTTP API for the chat gateway.
"""

from .routes import router

__all__ = ["router"]
