"""HTTP API."""

from autogeorge.api.app import create_app

__all__ = ["create_app"]
