"""
HTTP API for the pantry expiry notifier.

This package provides a single FastAPI application that exposes:
- Notification history and read state for the pantry UI
- Notification preferences
- Inventory trigger endpoints (item created / item deleted)
- On-demand evaluation passes
"""

from api.main import app

__all__ = ["app"]
