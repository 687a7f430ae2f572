"""Flask gateway: HTTP endpoints and Socket.IO session rooms."""

from web.app import create_app

__all__ = ["create_app"]
