# src/lifehub/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import chat_router, chat_socket_router

__all__ = [
    "chat_router",
    "chat_socket_router",
]
