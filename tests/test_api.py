from __future__ import annotations

from pathlib import Path

import pytest

from canlinkctl.api import Client, PortTable, PortTarget, UnknownBusAddressError


def test_public_client_list_and_configure(fake_links) -> None:
    links = fake_links({"can1": {"bus": "1-3:1.0", "state": "down", "bitrate": None}})
    client = Client(query=links, mutator=links)

    interfaces = client.list_interfaces()
    assert [i.name for i in interfaces] == ["can1"]
    assert interfaces[0].bus_address == "1-3:1.0"

    result = client.configure_single("can0", 500000, bus_address="1-3:1.0")
    assert result.final_name == "can0"
    assert client.list_interfaces()[0].is_up


def test_public_client_configure_table_from_file(fake_links, tmp_path: Path) -> None:
    links = fake_links({"can0": {"bus": "1-2:1.0", "state": "up", "bitrate": 1000000}})
    client = Client(query=links, mutator=links)
    path = tmp_path / "ports.yaml"
    path.write_text("ports:\n  \"1-2:1.0\": can_left:1000000\n", encoding="utf-8")

    results = client.configure_table(path)
    assert [r.final_name for r in results] == ["can_left"]
    assert "can_left" in links.interfaces


def test_public_client_configure_table_unknown_port(fake_links) -> None:
    links = fake_links({"can0": {"bus": "1-9:1.0", "state": "up", "bitrate": 1000000}})
    client = Client(query=links, mutator=links)
    table = PortTable(expected_count=1, ports={"1-2:1.0": PortTarget(name="can_left", bitrate=1000000)})

    with pytest.raises(UnknownBusAddressError):
        client.configure_table(table)
    assert links.mutations == []


def test_public_client_wait_for_present_device(fake_links) -> None:
    links = fake_links({"can5": {"bus": "1-3:1.0", "state": "down"}})
    client = Client(query=links, mutator=links)

    assert client.wait_for_device("1-3:1.0", timeout_s=0) == "can5"
