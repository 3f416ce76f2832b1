"""Link provider interfaces."""

from __future__ import annotations

from typing import Protocol


class LinkQuery(Protocol):
    def list_can_interfaces(self) -> list[str]:
        """Return the names of all interfaces of link type ``can``."""

    def get_bus_address(self, name: str) -> str | None:
        """Return the driver bus-info string for ``name``, if any."""

    def get_link_state(self, name: str) -> str:
        """Return ``"up"`` or ``"down"``."""

    def get_bitrate(self, name: str) -> int | None:
        """Return the configured bitrate in bit/s, if one is set."""


class LinkMutator(Protocol):
    def set_down(self, name: str) -> None: ...

    def set_up(self, name: str) -> None: ...

    def set_bitrate(self, name: str, bitrate: int) -> None: ...

    def rename(self, name: str, new_name: str) -> None: ...

    def load_driver(self, module: str) -> None:
        """Load a kernel module if it is not loaded yet."""
