"""HTTP backend for the browser extension."""

from .app import create_app

__all__ = ["create_app"]
