"""Stable public API for building tooling on top of canlinkctl.

This module is the supported integration surface for third-party callers.
Avoid importing from private/internal modules unless intentionally depending on
non-stable internals.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from pathlib import Path

from canlinkctl.core.config import (
    DEFAULT_BITRATE,
    DEFAULT_CAN_NAME,
    DEFAULT_DRIVER,
    DEFAULT_TIMEOUT_S,
    load_port_table,
    port_table_from_specs,
)
from canlinkctl.core.errors import (
    CanLinkError,
    ConfigLoadError,
    ConfigValidationError,
    CountMismatchError,
    DelegationError,
    DeviceNotFoundError,
    DriverLoadError,
    InputValidationError,
    LinkCommandError,
    UnknownBusAddressError,
    WaitCancelledError,
    WaitTimeoutError,
)
from canlinkctl.core.model import ConfigureResult, InterfaceInfo, LinkAction, PortTable, PortTarget
from canlinkctl.core.service import CanLinkService
from canlinkctl.core.wait import DEFAULT_INTERVAL_S
from canlinkctl.links.base import LinkMutator, LinkQuery

__all__ = [
    "CanLinkError",
    "ConfigLoadError",
    "ConfigValidationError",
    "CountMismatchError",
    "DelegationError",
    "DeviceNotFoundError",
    "DriverLoadError",
    "InputValidationError",
    "LinkCommandError",
    "UnknownBusAddressError",
    "WaitCancelledError",
    "WaitTimeoutError",
    "ConfigureResult",
    "InterfaceInfo",
    "LinkAction",
    "LinkMutator",
    "LinkQuery",
    "PortTable",
    "PortTarget",
    "Client",
    "load_port_table",
    "port_table_from_specs",
]


class Client:
    """Public client for inspecting and configuring CAN interfaces.

    A `Client` wraps interface discovery, the single-device and port table
    configurators, and the device waiter. Pass ``query``/``mutator`` to run
    against something other than the host's iproute2 tools.
    """

    def __init__(
        self,
        *,
        query: LinkQuery | None = None,
        mutator: LinkMutator | None = None,
        driver: str = DEFAULT_DRIVER,
        use_sudo: bool | None = None,
    ) -> None:
        self._service = CanLinkService(query=query, mutator=mutator, driver=driver, use_sudo=use_sudo)

    def list_interfaces(self) -> list[InterfaceInfo]:
        return self._service.list_interfaces()

    def configure_single(
        self,
        name: str = DEFAULT_CAN_NAME,
        bitrate: int = DEFAULT_BITRATE,
        *,
        bus_address: str | None = None,
    ) -> ConfigureResult:
        return self._service.configure_single(name, bitrate, bus_address)

    def configure_table(self, table: PortTable | Path | str | None = None) -> list[ConfigureResult]:
        """Configure every interface from ``table``, or from a port table file path."""
        if not isinstance(table, PortTable):
            table = load_port_table(table)
        return self._service.configure_table(table)

    def wait_for_device(
        self,
        bus_address: str,
        *,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        interval_s: float = DEFAULT_INTERVAL_S,
        cancel: threading.Event | None = None,
    ) -> str:
        return self._service.wait_for_device(
            bus_address,
            timeout_s,
            interval_s=interval_s,
            cancel=cancel,
        )

    def wait_and_configure(
        self,
        bus_address: str,
        name: str = DEFAULT_CAN_NAME,
        bitrate: int = DEFAULT_BITRATE,
        *,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        interval_s: float = DEFAULT_INTERVAL_S,
        cancel: threading.Event | None = None,
        on_retry: Callable[[float], None] | None = None,
    ) -> ConfigureResult:
        return self._service.wait_and_configure(
            name,
            bitrate,
            bus_address,
            timeout_s,
            interval_s=interval_s,
            cancel=cancel,
            on_retry=on_retry,
        )
