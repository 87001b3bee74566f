# src/lifehub/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .chat import router as chat_router
from .chat_socket import router as chat_socket_router

__all__ = [
    "chat_router",
    "chat_socket_router",
]
