"""Core data models used across config loading, service, and CLI."""

from __future__ import annotations

from dataclasses import dataclass

LINK_UP = "up"
LINK_DOWN = "down"


@dataclass(frozen=True)
class InterfaceInfo:
    name: str
    bus_address: str | None
    link_state: str
    bitrate: int | None

    @property
    def is_up(self) -> bool:
        return self.link_state == LINK_UP


@dataclass(frozen=True)
class PortTarget:
    name: str
    bitrate: int


@dataclass(frozen=True)
class PortTable:
    expected_count: int
    ports: dict[str, PortTarget]


@dataclass(frozen=True)
class LinkAction:
    op: str
    interface: str
    value: str | int | None = None

    def describe(self) -> str:
        if self.op == "bitrate":
            return f"ip link set {self.interface} type can bitrate {self.value}"
        if self.op == "rename":
            return f"ip link set {self.interface} name {self.value}"
        return f"ip link set {self.interface} {self.op}"


@dataclass(frozen=True)
class ConfigureResult:
    interface: InterfaceInfo
    target: PortTarget
    actions: tuple[LinkAction, ...]

    @property
    def final_name(self) -> str:
        return self.target.name

    @property
    def changed(self) -> bool:
        return bool(self.actions)

    @property
    def renamed(self) -> bool:
        return self.interface.name != self.target.name

    @property
    def bitrate_changed(self) -> bool:
        return any(action.op == "bitrate" for action in self.actions)
