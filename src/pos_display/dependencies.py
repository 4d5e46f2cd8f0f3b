"""Shared FastAPI dependencies."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from fastapi import HTTPException, Request

from .controller import OrderController
from .errors import OrderError


def get_controller(request: Request) -> OrderController:
    """Provide the order controller owned by the running application."""

    return request.app.state.controller


@contextmanager
def order_errors() -> Iterator[None]:
    """Translate domain errors raised inside the block into HTTP errors."""

    try:
        yield
    except OrderError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc
