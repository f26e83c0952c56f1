"""Typer CLI entrypoint."""

from __future__ import annotations

import logging

import typer

from pductl.core.errors import PductlError
from pductl.core.model import CONTROL_PROTOCOL_STATUS, ControlKind, DeviceProfile, SequenceDirection, Snapshot
from pductl.core.service import PduService

app = typer.Typer(help="Rack power distribution unit control over the Select TCP protocol")

_DIRECTIONS = {"up": SequenceDirection.UP, "down": SequenceDirection.DOWN}
_STATES = {"on": True, "off": False}


@app.callback()
def main(debug: bool = typer.Option(False, "--debug", help="Log protocol traffic to stderr")) -> None:
    if debug:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )


def _build_service() -> PduService:
    service = PduService()
    for warning in getattr(service, "load_warnings", ()):
        typer.echo(f"Warning: {warning}", err=True)
    return service


def _resolve(
    service: PduService,
    device: str | None,
    host: str | None,
    port: int | None,
    username: str | None,
    password: str | None,
) -> DeviceProfile:
    return service.resolve_profile(
        device,
        host=host,
        port=port,
        username=username,
        password=password,
    )


def _print_snapshot(snapshot: Snapshot) -> None:
    statistics = snapshot.statistics
    status = statistics.pop(CONTROL_PROTOCOL_STATUS, None)
    if status:
        typer.echo(f"{CONTROL_PROTOCOL_STATUS}: {status}")
    for name, value in sorted(statistics.items()):
        if value:
            typer.echo(f"  {name}: {value}")
    buttons = [c.name for c in snapshot.controls if c.kind is ControlKind.BUTTON]
    if buttons:
        typer.echo(f"Available: {', '.join(sorted(buttons))}")


_DEVICE_OPT = typer.Option(None, "--device", help="Configured device profile name or host fragment")
_HOST_OPT = typer.Option(None, "--host", help="Device address, bypasses configured profiles")
_PORT_OPT = typer.Option(None, "--port", help="TCP port (default 60000)")
_USER_OPT = typer.Option(None, "--username", help="Login name")
_PASSWORD_OPT = typer.Option(None, "--password", help="Login password")


@app.command("devices")
def list_devices() -> None:
    """List configured device profiles."""
    try:
        service = _build_service()
        profiles = service.list_profiles()
        if not profiles:
            typer.echo("No device profiles configured")
            return
        for profile in profiles:
            typer.echo(f"{profile.name}: {profile.host}:{profile.port} (user {profile.username})")
    except PductlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("status")
def status(
    device: str | None = _DEVICE_OPT,
    host: str | None = _HOST_OPT,
    port: int | None = _PORT_OPT,
    username: str | None = _USER_OPT,
    password: str | None = _PASSWORD_OPT,
) -> None:
    """Scan the device and print every outlet with its state."""
    try:
        service = _build_service()
        profile = _resolve(service, device, host, port, username, password)
        typer.echo(f"Target: {profile.name} ({profile.host}:{profile.port})")
        _print_snapshot(service.status(profile))
    except PductlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("outlet")
def set_outlet(
    slot: int,
    state: str,
    device: str | None = _DEVICE_OPT,
    host: str | None = _HOST_OPT,
    port: int | None = _PORT_OPT,
    username: str | None = _USER_OPT,
    password: str | None = _PASSWORD_OPT,
) -> None:
    """Switch a controllable outlet on or off."""
    if state.lower() not in _STATES:
        typer.echo(f"Error: state must be one of: {', '.join(_STATES)}", err=True)
        raise typer.Exit(code=2)
    try:
        service = _build_service()
        profile = _resolve(service, device, host, port, username, password)
        snapshot = service.set_outlet(profile, slot, _STATES[state.lower()])
        typer.echo(f"Sent outlet {slot}={state.lower()} to {profile.name}")
        _print_snapshot(snapshot)
    except PductlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("sequence")
def sequence(
    direction: str,
    device: str | None = _DEVICE_OPT,
    host: str | None = _HOST_OPT,
    port: int | None = _PORT_OPT,
    username: str | None = _USER_OPT,
    password: str | None = _PASSWORD_OPT,
) -> None:
    """Start the power-up or power-down sequence across all controllable outlets."""
    if direction.lower() not in _DIRECTIONS:
        typer.echo(f"Error: direction must be one of: {', '.join(_DIRECTIONS)}", err=True)
        raise typer.Exit(code=2)
    try:
        service = _build_service()
        profile = _resolve(service, device, host, port, username, password)
        snapshot = service.run_sequence(profile, _DIRECTIONS[direction.lower()])
        typer.echo(f"Started sequence {direction.lower()} on {profile.name}")
        _print_snapshot(snapshot)
    except PductlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


def run() -> None:
    app()


if __name__ == "__main__":
    run()
