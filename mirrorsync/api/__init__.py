"""Falcon ASGI application for the webhook ingest service.

Usage
-----
Create a health-only app::

    from mirrorsync.api import create_app

    app = create_app()

"""

from mirrorsync.api.app import AppDependencies, create_app

__all__ = ["AppDependencies", "create_app"]
