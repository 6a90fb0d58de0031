"""HTTP API for queue administration and read-only views."""

from .server import app

__all__ = ["app"]
