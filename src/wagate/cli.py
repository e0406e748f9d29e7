"""wagate command line."""

from __future__ import annotations

import typer
import uvicorn
from loguru import logger

from wagate.address import normalize
from wagate.api import create_app
from wagate.bootstrap import build_gateway
from wagate.config import load_settings
from wagate.errors import ConfigurationError, InvalidAddressError
from wagate.logging_utils import LogProfile, configure_logging

app = typer.Typer(name="wagate", help="HTTP gateway for a chat-network session.", add_completion=False)


@app.command("serve")
def serve(
    host: str | None = typer.Option(None, "--host", help="Listen address"),
    port: int | None = typer.Option(None, "--port", "-p", help="Listen port"),
    provider: str | None = typer.Option(None, "--provider", help="Provider factory, 'package.module:attribute'"),
    log_profile: str = typer.Option("default", "--log-profile", help="Log output: default or console"),
) -> None:
    """Run the HTTP control surface and the session event loop."""

    if log_profile not in ("default", "console"):
        raise typer.BadParameter("must be 'default' or 'console'", param_hint="--log-profile")
    settings = load_settings(host=host, port=port, provider=provider)
    profile: LogProfile = "console" if log_profile == "console" else "default"
    configure_logging(profile=profile, level=settings.log_level)

    try:
        gateway = build_gateway(settings)
    except ConfigurationError as exc:
        logger.error("cli.config.error {}", exc)
        raise typer.Exit(2) from exc

    logger.info(
        "cli.serve host={} port={} provider={} webhook={}",
        settings.host,
        settings.port,
        settings.provider,
        settings.webhook_url or "<disabled>",
    )
    uvicorn.run(create_app(gateway), host=settings.host, port=settings.port, log_level=settings.log_level.lower())


@app.command("normalize")
def normalize_command(token: str = typer.Argument(..., help="Phone number or chat id")) -> None:
    """Print the canonical chat address for TOKEN."""

    try:
        address = normalize(token)
    except InvalidAddressError as exc:
        typer.echo(exc.hint, err=True)
        raise typer.Exit(1) from exc
    typer.echo(f"{address.value}\t{address.kind.value}")
