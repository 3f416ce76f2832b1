"""Service layer used by the CLI and the public API."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from canlinkctl.core.config import (
    DEFAULT_BITRATE,
    DEFAULT_CAN_NAME,
    DEFAULT_DRIVER,
    DEFAULT_TIMEOUT_S,
    is_valid_interface_name,
)
from canlinkctl.core.errors import (
    CanLinkError,
    CountMismatchError,
    DelegationError,
    DeviceNotFoundError,
    InputValidationError,
    UnknownBusAddressError,
    WaitTimeoutError,
)
from canlinkctl.core.model import ConfigureResult, InterfaceInfo, LinkAction, PortTable, PortTarget
from canlinkctl.core.reconcile import is_satisfied, plan_actions
from canlinkctl.core.wait import DEFAULT_INTERVAL_S, poll_until
from canlinkctl.links.base import LinkMutator, LinkQuery
from canlinkctl.links.iproute import IPRouteLinks

LOGGER = logging.getLogger(__name__)


class CanLinkService:
    def __init__(
        self,
        *,
        query: LinkQuery | None = None,
        mutator: LinkMutator | None = None,
        driver: str = DEFAULT_DRIVER,
        use_sudo: bool | None = None,
    ) -> None:
        links = None
        if query is None or mutator is None:
            links = IPRouteLinks(use_sudo=use_sudo)
        self.query: LinkQuery = query or links
        self.mutator: LinkMutator = mutator or links
        self.driver = driver

    def read_interface(self, name: str) -> InterfaceInfo:
        return InterfaceInfo(
            name=name,
            bus_address=self.query.get_bus_address(name),
            link_state=self.query.get_link_state(name),
            bitrate=self.query.get_bitrate(name),
        )

    def list_interfaces(self) -> list[InterfaceInfo]:
        return [self.read_interface(name) for name in self.query.list_can_interfaces()]

    def find_by_bus_address(self, bus_address: str) -> str | None:
        for name in self.query.list_can_interfaces():
            if self.query.get_bus_address(name) == bus_address:
                return name
        return None

    def resolve_single(self, bus_address: str | None = None) -> InterfaceInfo:
        if bus_address:
            name = self.find_by_bus_address(bus_address)
            if name is None:
                raise DeviceNotFoundError(
                    f"Unable to find CAN interface corresponding to USB hardware address {bus_address}."
                )
            LOGGER.info("Found interface %s for USB hardware address %s", name, bus_address)
            return self.read_interface(name)

        names = self.query.list_can_interfaces()
        if not names:
            raise DeviceNotFoundError("Unable to detect CAN interface.")
        if len(names) > 1:
            raise CountMismatchError(
                f"Expected only one CAN interface but detected {len(names)} ({', '.join(names)}). "
                "Pass a USB hardware address to choose one."
            )
        LOGGER.info("Expected only one CAN interface, detected %s", names[0])
        return self.read_interface(names[0])

    def configure_single(
        self,
        name: str = DEFAULT_CAN_NAME,
        bitrate: int = DEFAULT_BITRATE,
        bus_address: str | None = None,
    ) -> ConfigureResult:
        target = PortTarget(name=name, bitrate=bitrate)
        _check_target(target)
        self.mutator.load_driver(self.driver)
        interface = self.resolve_single(bus_address)
        return self.apply(interface, target)

    def configure_table(self, table: PortTable) -> list[ConfigureResult]:
        names = self.query.list_can_interfaces()
        if len(names) != table.expected_count:
            raise CountMismatchError(
                f"Detected CAN module count ({len(names)}) does not match "
                f"expected count ({table.expected_count})."
            )
        if len(table.ports) != table.expected_count:
            raise CountMismatchError(
                f"Expected CAN module count ({table.expected_count}) does not match "
                f"predefined USB port count ({len(table.ports)})."
            )

        self.mutator.load_driver(self.driver)

        # Every bus address is checked before the first interface is touched.
        planned: list[tuple[InterfaceInfo, PortTarget]] = []
        for name in names:
            interface = self.read_interface(name)
            if interface.bus_address is None:
                raise UnknownBusAddressError(f"Unable to get bus-info for interface {name}.")
            target = table.ports.get(interface.bus_address)
            if target is None:
                raise UnknownBusAddressError(
                    f"Unknown USB port {interface.bus_address} corresponding to interface {name}."
                )
            LOGGER.info("Interface %s is connected to USB port %s", name, interface.bus_address)
            planned.append((interface, target))

        results: list[ConfigureResult] = []
        for interface, target in planned:
            # Link state and bitrate are re-read right before each interface is changed.
            results.append(self.apply(self.read_interface(interface.name), target))
        return results

    def apply(self, interface: InterfaceInfo, target: PortTarget) -> ConfigureResult:
        actions = plan_actions(interface, target)
        if is_satisfied(interface, target):
            LOGGER.info("Interface %s already matches %s@%d", interface.name, target.name, target.bitrate)
        for action in actions:
            LOGGER.debug("Applying %s", action.describe())
            self._apply_action(action)
        return ConfigureResult(interface=interface, target=target, actions=actions)

    def wait_for_device(
        self,
        bus_address: str | None,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        *,
        interval_s: float = DEFAULT_INTERVAL_S,
        cancel: threading.Event | None = None,
        on_retry: Callable[[float], None] | None = None,
    ) -> str:
        if not bus_address:
            raise InputValidationError("USB hardware address must be provided.")
        try:
            return poll_until(
                lambda: self.find_by_bus_address(bus_address),
                timeout_s=timeout_s,
                interval_s=interval_s,
                cancel=cancel,
                on_retry=on_retry,
            )
        except WaitTimeoutError as exc:
            raise WaitTimeoutError(
                f"Timeout: CAN device not found within {timeout_s:g} seconds."
            ) from exc

    def wait_and_configure(
        self,
        name: str = DEFAULT_CAN_NAME,
        bitrate: int = DEFAULT_BITRATE,
        bus_address: str | None = None,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        *,
        interval_s: float = DEFAULT_INTERVAL_S,
        cancel: threading.Event | None = None,
        on_retry: Callable[[float], None] | None = None,
        on_found: Callable[[str], None] | None = None,
    ) -> ConfigureResult:
        found = self.wait_for_device(
            bus_address,
            timeout_s,
            interval_s=interval_s,
            cancel=cancel,
            on_retry=on_retry,
        )
        LOGGER.info("Found CAN device %s at %s, configuring", found, bus_address)
        if on_found is not None:
            on_found(found)
        try:
            return self.configure_single(name, bitrate, bus_address)
        except CanLinkError as exc:
            raise DelegationError(f"Configuration of {bus_address} failed: {exc}") from exc

    def _apply_action(self, action: LinkAction) -> None:
        if action.op == "down":
            self.mutator.set_down(action.interface)
        elif action.op == "up":
            self.mutator.set_up(action.interface)
        elif action.op == "bitrate":
            self.mutator.set_bitrate(action.interface, int(action.value))
        elif action.op == "rename":
            self.mutator.rename(action.interface, str(action.value))
        else:
            raise CanLinkError(f"Unsupported link action '{action.op}'")


def _check_target(target: PortTarget) -> None:
    if not is_valid_interface_name(target.name):
        raise InputValidationError(
            f"Invalid CAN interface name '{target.name}': use 1-15 characters without whitespace, ':' or '/'."
        )
    if target.bitrate <= 0:
        raise InputValidationError(f"Bitrate must be positive, got {target.bitrate}.")
