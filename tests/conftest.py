from __future__ import annotations

import pytest

from canlinkctl.core.errors import DriverLoadError, LinkCommandError


class FakeLinks:
    """In-memory stand-in for both link providers.

    Mirrors the kernel rule that bitrate and name can only change while the
    link is down, so ordering mistakes surface as errors.
    """

    def __init__(self, interfaces: dict[str, dict] | None = None, *, driver_fails: bool = False) -> None:
        self.interfaces: dict[str, dict] = {
            name: dict(state) for name, state in (interfaces or {}).items()
        }
        self.driver_fails = driver_fails
        self.calls: list[str] = []

    def list_can_interfaces(self) -> list[str]:
        return list(self.interfaces)

    def get_bus_address(self, name: str) -> str | None:
        return self.interfaces[name].get("bus")

    def get_link_state(self, name: str) -> str:
        return self.interfaces[name].get("state", "down")

    def get_bitrate(self, name: str) -> int | None:
        return self.interfaces[name].get("bitrate")

    def set_down(self, name: str) -> None:
        self.calls.append(f"ip link set {name} down")
        self.interfaces[name]["state"] = "down"

    def set_up(self, name: str) -> None:
        self.calls.append(f"ip link set {name} up")
        self.interfaces[name]["state"] = "up"

    def set_bitrate(self, name: str, bitrate: int) -> None:
        self.calls.append(f"ip link set {name} type can bitrate {bitrate}")
        if self.interfaces[name].get("state") == "up":
            raise LinkCommandError(f"{name}: Device or resource busy")
        self.interfaces[name]["bitrate"] = bitrate

    def rename(self, name: str, new_name: str) -> None:
        self.calls.append(f"ip link set {name} name {new_name}")
        if self.interfaces[name].get("state") == "up":
            raise LinkCommandError(f"{name}: Device or resource busy")
        self.interfaces = {
            (new_name if key == name else key): value for key, value in self.interfaces.items()
        }

    def load_driver(self, module: str) -> None:
        self.calls.append(f"modprobe {module}")
        if self.driver_fails:
            raise DriverLoadError(f"Unable to load {module} module.")

    @property
    def mutations(self) -> list[str]:
        return [call for call in self.calls if call.startswith("ip link set")]


@pytest.fixture
def fake_links():
    return FakeLinks
