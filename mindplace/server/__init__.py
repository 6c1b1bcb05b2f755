"""
HTTP API for MindPlace.

Exposes snippets and topics over JSON so the HTTP remote store has an
authoritative backend to talk to.
"""

from .app import ServerSettings, build_database, create_app, run

__all__ = ["ServerSettings", "build_database", "create_app", "run"]
