"""Typer CLI entrypoint."""

from __future__ import annotations

import logging
from pathlib import Path

import typer

from canlinkctl.core.config import (
    DEFAULT_BITRATE,
    DEFAULT_CAN_NAME,
    DEFAULT_DRIVER,
    DEFAULT_TIMEOUT_S,
    build_port_table,
    load_port_table,
    port_table_from_specs,
)
from canlinkctl.core.errors import CanLinkError, InputValidationError
from canlinkctl.core.model import ConfigureResult
from canlinkctl.core.service import CanLinkService
from canlinkctl.core.wait import DEFAULT_INTERVAL_S

app = typer.Typer(help="Detect, configure, rename and activate USB-to-CAN interfaces")

_DRIVER_OPTION = typer.Option(DEFAULT_DRIVER, "--driver", help="Kernel module to load before configuring")
_SUDO_OPTION = typer.Option(
    None,
    "--sudo/--no-sudo",
    help="Run privileged commands through sudo (default: only when not root)",
)
_VERBOSE_OPTION = typer.Option(False, "--verbose", "-v", help="Log every command to stderr")


def _build_service(driver: str = DEFAULT_DRIVER, sudo: bool | None = None, verbose: bool = False) -> CanLinkService:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    return CanLinkService(driver=driver, use_sudo=sudo)


def _echo_result(result: ConfigureResult) -> None:
    interface = result.interface
    target = result.target
    if result.bitrate_changed:
        if interface.is_up:
            current = interface.bitrate if interface.bitrate is not None else "<unset>"
            typer.echo(
                f"Interface {interface.name} is already activated, but bitrate is {current}, "
                f"which does not match the set value of {target.bitrate}."
            )
        else:
            typer.echo(f"Interface {interface.name} is not activated or bitrate is not set.")
        typer.echo(f"Interface {interface.name} has been reset to bitrate {target.bitrate} and activated.")
    else:
        typer.echo(f"Interface {interface.name} is already activated with bitrate {target.bitrate}")

    if result.renamed:
        typer.echo(f"Renaming interface {interface.name} to {target.name}")
        typer.echo(f"Interface has been renamed to {target.name} and reactivated.")
    elif not result.changed:
        typer.echo(f"Interface name is already {target.name}")


@app.command("list")
def list_interfaces(
    sudo: bool | None = _SUDO_OPTION,
    verbose: bool = _VERBOSE_OPTION,
) -> None:
    """List CAN interfaces with their USB bus address, state and bitrate."""
    try:
        service = _build_service(sudo=sudo, verbose=verbose)
        interfaces = service.list_interfaces()
        if not interfaces:
            typer.echo("No CAN interfaces found")
            return

        for info in interfaces:
            bus = info.bus_address or "<unknown>"
            bitrate = info.bitrate if info.bitrate is not None else "<unset>"
            typer.echo(f"{info.name} bus-info={bus} state={info.link_state} bitrate={bitrate}")
    except CanLinkError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("activate")
def activate(
    can_name: str = typer.Argument(DEFAULT_CAN_NAME, help="Desired interface name"),
    bitrate: int = typer.Argument(DEFAULT_BITRATE, help="Desired bitrate in bit/s"),
    usb_address: str | None = typer.Argument(None, help="USB bus-info of the adapter, e.g. 1-3:1.0"),
    driver: str = _DRIVER_OPTION,
    sudo: bool | None = _SUDO_OPTION,
    verbose: bool = _VERBOSE_OPTION,
) -> None:
    """Configure a single CAN interface.

    Without USB_ADDRESS exactly one CAN interface must be present.
    """
    try:
        service = _build_service(driver, sudo, verbose)
        if usb_address:
            typer.echo(f"Detected USB hardware address parameter: {usb_address}")
        result = service.configure_single(can_name, bitrate, usb_address)
        _echo_result(result)
        typer.echo("All CAN interfaces have been successfully renamed and activated.")
    except CanLinkError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("activate-all")
def activate_all(
    config: Path | None = typer.Option(None, "--config", "-c", help="Port table YAML file (cannot be combined with --port)"),
    port: list[str] = typer.Option([], "--port", "-p", help="BUS=NAME:BITRATE, may be repeated"),
    expected_count: int | None = typer.Option(None, "--expected-count", min=1, help="Number of adapters expected"),
    driver: str = _DRIVER_OPTION,
    sudo: bool | None = _SUDO_OPTION,
    verbose: bool = _VERBOSE_OPTION,
) -> None:
    """Configure every CAN interface from a port table.

    Ports come from --port options or from --config (default: the port
    table file in the user config directory), never from both.
    """
    try:
        service = _build_service(driver, sudo, verbose)
        if port and config is not None:
            raise InputValidationError("Use either --port or --config, not both.")
        if port:
            table = port_table_from_specs(port, expected_count)
        else:
            table = load_port_table(config)
            if expected_count is not None:
                table = build_port_table(table.ports, expected_count)

        for result in service.configure_table(table):
            typer.echo(
                f"Interface {result.interface.name} is connected to USB port {result.interface.bus_address}"
            )
            _echo_result(result)
        typer.echo("All CAN interfaces have been successfully renamed and activated.")
    except CanLinkError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("wait")
def wait(
    can_name: str = typer.Argument(DEFAULT_CAN_NAME, help="Desired interface name"),
    bitrate: int = typer.Argument(DEFAULT_BITRATE, help="Desired bitrate in bit/s"),
    usb_address: str | None = typer.Argument(None, help="USB bus-info to wait for (required)"),
    timeout: float = typer.Argument(DEFAULT_TIMEOUT_S, min=0, help="Seconds to wait for the device"),
    interval: float = typer.Option(DEFAULT_INTERVAL_S, "--interval", min=0.1, help="Seconds between checks"),
    driver: str = _DRIVER_OPTION,
    sudo: bool | None = _SUDO_OPTION,
    verbose: bool = _VERBOSE_OPTION,
) -> None:
    """Wait for an adapter to appear at USB_ADDRESS, then configure it."""
    try:
        service = _build_service(driver, sudo, verbose)
        if usb_address:
            typer.echo(f"Starting check for CAN device at USB hardware address {usb_address}...")
        result = service.wait_and_configure(
            can_name,
            bitrate,
            usb_address,
            timeout,
            interval_s=interval,
            on_retry=lambda _remaining: typer.echo("CAN device not found, waiting and retrying..."),
            on_found=lambda _name: typer.echo("Found CAN device, configuring..."),
        )
        _echo_result(result)
        typer.echo("CAN device configured successfully.")
    except CanLinkError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


def run() -> None:
    app()


if __name__ == "__main__":
    run()
