from collections.abc import Generator
from typing import Any

import pytest
from fastapi.testclient import TestClient

from pos_display.app import create_app
from pos_display.broadcast import CallbackSubscriber
from pos_display.config import Settings
from pos_display.controller import OrderController


@pytest.fixture(name="settings")
def settings_fixture() -> Settings:
    return Settings(clear_delay=0.2, cors_origins=[])


@pytest.fixture(name="controller")
def controller_fixture(settings: Settings) -> Generator[OrderController, None, None]:
    controller = OrderController.from_settings(settings)
    yield controller
    controller.close()


@pytest.fixture(name="events")
def events_fixture(controller: OrderController) -> list[tuple[str, Any]]:
    """Events published after the fixture subscribed, without the catch-up message."""

    received: list[tuple[str, Any]] = []
    controller.hub.subscribe(CallbackSubscriber(lambda event, payload: received.append((event, payload))))
    received.clear()
    return received


@pytest.fixture(name="client")
def client_fixture(settings: Settings, controller: OrderController) -> Generator[TestClient, None, None]:
    app = create_app(settings=settings, controller=controller)
    with TestClient(app) as client:
        yield client
