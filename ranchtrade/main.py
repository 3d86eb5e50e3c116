from __future__ import annotations

# Minimal entrypoint module for ASGI servers
# Exposes the FastAPI app constructed in ranchtrade.api.routes
from ranchtrade.api.routes import app

__all__ = ["app"]
