"""Typer CLI entrypoint."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TypeVar

import typer

from lighthousectl.core.accessories import AccessoryStore
from lighthousectl.core.errors import LighthouseError
from lighthousectl.core.service import LighthouseService

app = typer.Typer(help="Control Lighthouse 2.0 base stations over Bluetooth LE")

T = TypeVar("T")

CONFIG_OPTION = typer.Option(None, "--config", help="Path to config.yaml")


@app.callback()
def main(
    log_level: str = typer.Option("WARNING", "--log-level", help="Python logging level"),
) -> None:
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _build_service(config: Path | None, *, persist: bool = False) -> LighthouseService:
    # Only `run` owns the accessory cache; one-shot commands must not prune it.
    bridge = None if persist else AccessoryStore()
    service = LighthouseService(config_path=config, bridge=bridge)
    for warning in getattr(service, "load_warnings", ()):
        typer.echo(f"Warning: {warning}", err=True)
    return service


async def _started(service: LighthouseService, action: Callable[[], Awaitable[T]]) -> T:
    await service.start()
    try:
        return await action()
    finally:
        await service.stop()


@app.command("scan")
def scan(config: Path | None = CONFIG_OPTION) -> None:
    """Scan once and list nearby Bluetooth devices."""
    try:
        service = _build_service(config)
        devices = asyncio.run(service.scan())
        if not devices:
            typer.echo("No Bluetooth devices found")
            return

        for device in devices:
            matched = "lighthouse" if service.settings.accepts(device.name) else "<ignored>"
            typer.echo(f"{device.address} {device.name} -> {matched}")
    except LighthouseError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("status")
def status(
    name: str | None = typer.Argument(None),
    config: Path | None = CONFIG_OPTION,
) -> None:
    """Show the power state of one lighthouse, or of every one found."""
    try:
        service = _build_service(config)

        async def _collect() -> list[tuple[str, str]]:
            if name is not None:
                on = await service.get_power(name)
                return [(name, "on" if on else "off")]
            rows: list[tuple[str, str]] = []
            for device in service.lighthouses():
                try:
                    on = await service.get_power(device.name)
                except LighthouseError as exc:
                    rows.append((device.name, f"error ({exc})"))
                else:
                    rows.append((device.name, "on" if on else "off"))
            return rows

        rows = asyncio.run(_started(service, _collect))
        if not rows:
            typer.echo("No lighthouses found")
            raise typer.Exit(code=1)
        for device_name, state in rows:
            typer.echo(f"{device_name}: {state}")
    except LighthouseError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


def _power(name: str, on: bool, config: Path | None) -> None:
    try:
        service = _build_service(config)
        asyncio.run(_started(service, lambda: service.set_power(name, on)))
        typer.echo(f"{name} turned {'on' if on else 'off'}")
    except LighthouseError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("on")
def power_on(name: str, config: Path | None = CONFIG_OPTION) -> None:
    """Switch a lighthouse on."""
    _power(name, True, config)


@app.command("off")
def power_off(name: str, config: Path | None = CONFIG_OPTION) -> None:
    """Switch a lighthouse to standby."""
    _power(name, False, config)


@app.command("identify")
def identify(name: str, config: Path | None = CONFIG_OPTION) -> None:
    """Blink a lighthouse so it can be located."""
    try:
        service = _build_service(config)
        asyncio.run(_started(service, lambda: service.identify(name)))
        typer.echo(f"Identify sent to {name}")
    except LighthouseError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("run")
def run_forever(config: Path | None = CONFIG_OPTION) -> None:
    """Discover lighthouses and keep polling them until interrupted."""
    try:
        service = _build_service(config, persist=True)
        asyncio.run(service.serve_forever())
    except KeyboardInterrupt:
        typer.echo("Stopped")
    except LighthouseError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


def run() -> None:
    app()


if __name__ == "__main__":
    run()
