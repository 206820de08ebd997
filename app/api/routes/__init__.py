from __future__ import annotations

from app.api.routes.health import router as health_router
from app.api.routes.pastes import router as pastes_router

__all__ = ["health_router", "pastes_router"]
