"""Marketplace FastAPI application.

Settings come from ``MARKETPLACE_*`` environment variables (or ``.env``).
The domain is initialized and the database schema created on startup.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

from marketplace.api import create_app

app = create_app()
