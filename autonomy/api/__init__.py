"""HTTP API for Autonomy."""

from autonomy.api.app import create_app, main

__all__ = ["create_app", "main"]
