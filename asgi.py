"""
asgi.py -- ASGI entry point for Gatekeeper.

Run with:  uvicorn asgi:app --reload

api/main.py builds the application and registers every router; this module
only gives process managers a stable import path.
"""

from api.main import app

__all__ = ["app"]
