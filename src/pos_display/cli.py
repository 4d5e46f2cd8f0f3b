"""Command line interface for the packaged service."""

from __future__ import annotations

import json
from typing import Any, Optional
from urllib.error import URLError
from urllib.request import urlopen

import typer
import uvicorn

from .config import get_settings

app = typer.Typer(help="Run and inspect the POS customer display hub.")


def _print_header(title: str) -> None:
    typer.secho(title, bold=True, fg=typer.colors.CYAN)


def _fetch_json(source: str, path: str) -> Any:
    url = f"{source.rstrip('/')}{path}"
    try:
        with urlopen(url) as response:
            payload = response.read().decode("utf-8")
    except URLError as exc:
        typer.secho(f"Failed to connect to {url}: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=1) from exc
    try:
        return json.loads(payload)
    except json.JSONDecodeError as exc:
        typer.secho("Server returned invalid JSON.", fg=typer.colors.RED)
        raise typer.Exit(code=1) from exc


def _echo_order(order: dict[str, Any]) -> None:
    typer.echo(f"{order.get('orderId')} [{order.get('status')}] {order.get('timestamp')}")
    for item in order.get("items") or []:
        typer.echo(f"  {item.get('quantity')} x {item.get('name')} @ {item.get('price')} = {item.get('total')}")
    typer.echo(
        f"  subtotal={order.get('subtotal')} tax={order.get('tax')} "
        f"discount={order.get('discount')} total={order.get('total')}"
    )


@app.command()
def run(
    host: Optional[str] = typer.Option(None, help="Hostname to bind"),
    port: Optional[int] = typer.Option(None, help="Port to expose"),
    reload: Optional[bool] = typer.Option(None, help="Enable auto-reload"),
    log_level: Optional[str] = typer.Option(None, help="Uvicorn log level"),
) -> None:
    """Start the FastAPI service using Uvicorn."""

    settings = get_settings()
    typer.echo(f"Display channel: ws://{host or settings.host}:{port or settings.port}/customer-display")

    uvicorn.run(
        "pos_display.app:create_app",
        host=host or settings.host,
        port=port or settings.port,
        reload=settings.reload if reload is None else reload,
        log_level=log_level or settings.log_level,
        factory=True,
    )


@app.command("show-config")
def show_config() -> None:
    """Print the effective runtime configuration."""

    settings = get_settings()
    _print_header("Configuration")
    typer.echo(f"App name: {settings.app_name}")
    typer.echo(f"Bind: {settings.host}:{settings.port}")
    typer.echo(f"Tax rate: {settings.tax_rate}")
    typer.echo(f"Clear delay: {settings.clear_delay}s")
    typer.echo(f"Subscriber queue size: {settings.subscriber_queue_size}")
    typer.echo(f"Send timeout: {settings.send_timeout}s")
    typer.echo(f"CORS origins: {', '.join(settings.cors_origins) or '-'}")


@app.command("current-order")
def current_order(
    source: str = typer.Argument(..., help="Base URL of a running service, e.g. http://localhost:3000"),
) -> None:
    """Show the order currently mirrored to the displays."""

    body = _fetch_json(source, "/api/pos/current-order")
    order = body.get("order") if isinstance(body, dict) else None
    if not order:
        typer.secho("No active order.", fg=typer.colors.YELLOW)
        return
    _print_header("Active order")
    _echo_order(order)


@app.command()
def history(
    source: str = typer.Argument(..., help="Base URL of a running service, e.g. http://localhost:3000"),
) -> None:
    """List the completed orders archived by a running service."""

    body = _fetch_json(source, "/api/orders/history")
    orders = body.get("orders") if isinstance(body, dict) else None
    if not orders:
        typer.echo("No completed orders.")
        return
    _print_header(f"{len(orders)} completed order(s)")
    for order in orders:
        _echo_order(order)


def main() -> None:
    """Entry-point for console scripts."""

    app()


if __name__ == "__main__":  # pragma: no cover
    main()
