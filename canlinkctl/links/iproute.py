"""Link provider backed by the iproute2, ethtool and kmod command-line tools."""

from __future__ import annotations

import logging
import os
import re
import subprocess
from collections.abc import Sequence

from canlinkctl.core.errors import DriverLoadError, LinkCommandError
from canlinkctl.core.model import LINK_DOWN, LINK_UP

_FLAGS_RE = re.compile(r"<([^>]*)>")
_BITRATE_RE = re.compile(r"\bbitrate\s+(\d+)")
LOGGER = logging.getLogger(__name__)


def _default_use_sudo() -> bool:
    geteuid = getattr(os, "geteuid", None)
    return geteuid is not None and geteuid() != 0


class IPRouteLinks:
    """Query and mutate CAN interfaces by running ``ip``, ``ethtool`` and ``modprobe``.

    Privileged commands (``ethtool``, every ``ip link set`` and ``modprobe``)
    are prefixed with ``sudo`` when ``use_sudo`` is true. By default sudo is
    used unless the process already runs as root.
    """

    def __init__(self, *, use_sudo: bool | None = None) -> None:
        self.use_sudo = _default_use_sudo() if use_sudo is None else use_sudo

    def list_can_interfaces(self) -> list[str]:
        result = self._run(["ip", "-br", "link", "show", "type", "can"])
        if result.returncode != 0:
            raise LinkCommandError(f"Could not list CAN interfaces: {_stderr(result)}")
        names: list[str] = []
        for line in result.stdout.splitlines():
            fields = line.split()
            if not fields:
                continue
            names.append(fields[0].split("@", 1)[0])
        return names

    def get_bus_address(self, name: str) -> str | None:
        result = self._run(["ethtool", "-i", name], privileged=True)
        if result.returncode != 0:
            LOGGER.debug("ethtool -i %s failed: %s", name, _stderr(result))
            return None
        return parse_bus_info(result.stdout)

    def get_link_state(self, name: str) -> str:
        result = self._run(["ip", "link", "show", name])
        if result.returncode != 0:
            raise LinkCommandError(f"Could not read link state of {name}: {_stderr(result)}")
        return parse_link_state(result.stdout)

    def get_bitrate(self, name: str) -> int | None:
        result = self._run(["ip", "-details", "link", "show", name])
        if result.returncode != 0:
            raise LinkCommandError(f"Could not read link details of {name}: {_stderr(result)}")
        return parse_bitrate(result.stdout)

    def set_down(self, name: str) -> None:
        self._ip_set([name, "down"])

    def set_up(self, name: str) -> None:
        self._ip_set([name, "up"])

    def set_bitrate(self, name: str, bitrate: int) -> None:
        self._ip_set([name, "type", "can", "bitrate", str(bitrate)])

    def rename(self, name: str, new_name: str) -> None:
        self._ip_set([name, "name", new_name])

    def load_driver(self, module: str) -> None:
        try:
            result = self._run(["modprobe", module], privileged=True)
        except LinkCommandError as exc:
            raise DriverLoadError(f"Unable to load {module} module: {exc}") from exc
        if result.returncode != 0:
            raise DriverLoadError(f"Unable to load {module} module: {_stderr(result)}")

    def _ip_set(self, args: Sequence[str]) -> None:
        cmd = ["ip", "link", "set", *args]
        result = self._run(cmd, privileged=True)
        if result.returncode != 0:
            raise LinkCommandError(f"'{' '.join(cmd)}' failed: {_stderr(result)}")

    def _run(self, cmd: Sequence[str], *, privileged: bool = False) -> subprocess.CompletedProcess[str]:
        full_cmd = ["sudo", *cmd] if privileged and self.use_sudo else list(cmd)
        LOGGER.debug("Running %s", " ".join(full_cmd))
        try:
            return subprocess.run(
                full_cmd,
                check=False,
                capture_output=True,
                text=True,
            )
        except FileNotFoundError as exc:
            raise LinkCommandError(f"Command not found: {full_cmd[0]}") from exc


def parse_bus_info(ethtool_output: str) -> str | None:
    for line in ethtool_output.splitlines():
        key, sep, value = line.partition(":")
        if sep and key.strip() == "bus-info":
            value = value.strip()
            return value or None
    return None


def parse_link_state(ip_output: str) -> str:
    match = _FLAGS_RE.search(ip_output)
    if match and "UP" in match.group(1).split(","):
        return LINK_UP
    return LINK_DOWN


def parse_bitrate(ip_details_output: str) -> int | None:
    match = _BITRATE_RE.search(ip_details_output)
    if not match:
        return None
    return int(match.group(1))


def _stderr(result: subprocess.CompletedProcess[str]) -> str:
    stderr = (result.stderr or "").strip()
    return stderr or f"exit status {result.returncode}"
