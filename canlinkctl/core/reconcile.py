"""Interface-to-target reconciliation logic."""

from __future__ import annotations

from canlinkctl.core.model import InterfaceInfo, LinkAction, PortTarget


def _rename_cycle(current: str, target_name: str) -> list[LinkAction]:
    return [
        LinkAction(op="down", interface=current),
        LinkAction(op="rename", interface=current, value=target_name),
        LinkAction(op="up", interface=target_name),
    ]


def _bitrate_cycle(current: str, bitrate: int) -> list[LinkAction]:
    # Bitrate can only be changed while the link is down.
    return [
        LinkAction(op="down", interface=current),
        LinkAction(op="bitrate", interface=current, value=bitrate),
        LinkAction(op="up", interface=current),
    ]


def is_satisfied(interface: InterfaceInfo, target: PortTarget) -> bool:
    return interface.is_up and interface.bitrate == target.bitrate and interface.name == target.name


def plan_actions(interface: InterfaceInfo, target: PortTarget) -> tuple[LinkAction, ...]:
    """Return the ordered mutations that bring ``interface`` to ``target``.

    An interface that is already up at the target bitrate only needs a
    rename (or nothing). Anything else is reset to the target bitrate first
    and renamed afterwards in a separate down/up cycle.
    """
    actions: list[LinkAction] = []
    if not (interface.is_up and interface.bitrate == target.bitrate):
        actions.extend(_bitrate_cycle(interface.name, target.bitrate))
    if interface.name != target.name:
        actions.extend(_rename_cycle(interface.name, target.name))
    return tuple(actions)
