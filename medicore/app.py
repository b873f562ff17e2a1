"""WSGI entry that exposes the configured Flask application."""

from __future__ import annotations

from . import APP_HOST, APP_PORT, create_app
from .extensions import close_store


app = create_app()


if __name__ == "__main__":
    try:
        app.run(host=APP_HOST, port=APP_PORT, debug=False)
    finally:
        close_store(app)
