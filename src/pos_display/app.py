"""FastAPI application factory."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__, realtime, schemas
from .config import Settings, get_settings
from .controller import OrderController
from .dependencies import get_controller
from .routes import display, orders, pos


def create_app(settings: Optional[Settings] = None, controller: Optional[OrderController] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Each application owns its controller, so separate instances never share an
    active order.
    """

    settings = settings or get_settings()
    controller = controller or OrderController.from_settings(settings)

    app = FastAPI(title=settings.app_name, version=__version__)
    app.state.settings = settings
    app.state.controller = controller

    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.include_router(pos.router)
    app.include_router(display.router)
    app.include_router(orders.router)
    app.include_router(realtime.router)

    @app.get("/health", response_model=schemas.HealthResponse, tags=["system"])
    def health_check(controller: OrderController = Depends(get_controller)) -> schemas.HealthResponse:
        order = controller.current_order()
        return schemas.HealthResponse(
            timestamp=datetime.now(timezone.utc).isoformat(),
            active_order=order["orderId"] if order else None,
            connected_displays=len(controller.hub),
            broadcast=controller.hub.stats.as_dict(),
        )

    @app.on_event("shutdown")
    def on_shutdown() -> None:
        controller.close()

    return app
