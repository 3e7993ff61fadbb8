"""Typer CLI entrypoint."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

import typer

from sidectl.core.decoder import decode_side
from sidectl.core.errors import SidectlError
from sidectl.core.model import Action, Effect, RenderTemplate, RunCommand, Side, State, SwitchActionSet
from sidectl.core.service import TrackerService

app = typer.Typer(help="Bridge a Bluetooth tracker cube to configurable actions")


def _expand(text: str, now: datetime | None = None) -> str:
    now = now or datetime.now()
    return text.replace("{{date}}", now.strftime("%Y-%m-%d")).replace("{{time}}", now.strftime("%H:%M"))


def _describe(action: Action) -> str:
    if action.is_noop:
        return "-"
    parts: list[str] = []
    if action.template is not None:
        parts.append(f"template={action.template!r}")
    if action.command is not None:
        parts.append(f"command={action.command}")
    if action.action_set is not None:
        parts.append(f"actionSet={action.action_set}")
    return ", ".join(parts)


class EchoSink:
    """Print status lines and effects; placeholders are expanded for display only."""

    def on_status(self, state: State, text: str) -> None:
        typer.echo(text)

    def on_effect(self, effect: Effect) -> None:
        if isinstance(effect, RenderTemplate):
            typer.echo(f"  template -> {_expand(effect.target_file)}: {_expand(effect.template)}")
        elif isinstance(effect, RunCommand):
            typer.echo(f"  command: {effect.command}")
        elif isinstance(effect, SwitchActionSet):
            typer.echo(f"  action set: {effect.previous} -> {effect.current}")


def _build_service(**kwargs) -> TrackerService:
    service = TrackerService(**kwargs)
    for warning in getattr(service, "load_warnings", ()):
        typer.echo(f"Warning: {warning}", err=True)
    return service


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


async def _listen(service: TrackerService, device: str | None = None) -> None:
    service.connect(device)
    try:
        await service.wait_idle()
    finally:
        await service.shutdown()


@app.command("listen")
def listen(
    device: str | None = typer.Option(None, "--device", help="Advertised device name (not saved)"),
) -> None:
    """Connect to the tracker and print status changes and effects until it disconnects."""
    try:
        service = _build_service(sink=EchoSink())
        try:
            asyncio.run(_listen(service, device))
        except KeyboardInterrupt:
            typer.echo("Stopped")
            return
        if service.state is State.UNAVAILABLE:
            typer.echo("Error: Bluetooth is unavailable on this host", err=True)
            raise typer.Exit(code=1)
        if service.last_error is not None:
            typer.echo(f"Error: {service.last_error}", err=True)
            raise typer.Exit(code=1)
    except SidectlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("sets")
def list_sets() -> None:
    """List action sets; the active one is marked with '*'."""
    try:
        service = _build_service()
        registry = service.registry
        for name in registry.names():
            marker = "*" if name == registry.active_name else " "
            typer.echo(f"{marker} {name}")
    except SidectlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("show")
def show_set(name: str | None = typer.Argument(None)) -> None:
    """Print the action table of NAME, or of the active set."""
    try:
        service = _build_service()
        set_name = name or service.registry.active_name
        action_set = service.registry.get_action_set(set_name)
        if action_set is None:
            typer.echo(f"Error: Action set '{set_name}' is not defined", err=True)
            raise typer.Exit(code=1)
        typer.echo(f"Action set: {set_name}")
        for side in Side:
            typer.echo(f"  {side.value}: {_describe(action_set[side])}")
    except SidectlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("use")
def use_set(name: str) -> None:
    """Make NAME the active action set."""
    try:
        service = _build_service()
        service.use_action_set(name)
        typer.echo(f"Active action set: {name}")
    except SidectlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("decode")
def decode(value: str) -> None:
    """Decode a status byte given as decimal or 0x-prefixed hex."""
    try:
        raw = int(value, 0)
    except ValueError:
        typer.echo(f"Error: '{value}' is not an integer", err=True)
        raise typer.Exit(code=1) from None
    typer.echo(f"0x{raw:02x} -> {decode_side(raw).value}")


@app.command("configure")
def configure(
    device_name: str | None = typer.Option(None, "--device-name", help="Advertised name of the tracker"),
    target_file: str | None = typer.Option(None, "--target-file", help="Template target file pattern"),
) -> None:
    """Update persisted settings, or print them when no option is given."""
    try:
        service = _build_service()
        if device_name is not None:
            service.set_device_name(device_name)
        if target_file is not None:
            service.set_template_target_file(target_file)
        typer.echo(f"Settings: {service.store.path}")
        typer.echo(f"  deviceName: {service.settings.device_name}")
        typer.echo(f"  templateTargetFile: {service.settings.template_target_file}")
        typer.echo(f"  activeActionSetName: {service.settings.active_action_set_name}")
    except SidectlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


def run() -> None:
    app()


if __name__ == "__main__":
    run()
