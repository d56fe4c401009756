"""Storefront ASGI entrypoint.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

from storefront.api.app import create_app

app = create_app()
