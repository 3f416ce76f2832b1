from __future__ import annotations

import threading

import pytest

from canlinkctl.core import service as service_module
from canlinkctl.core.errors import (
    DelegationError,
    InputValidationError,
    WaitCancelledError,
    WaitTimeoutError,
)
from canlinkctl.core.service import CanLinkService
from canlinkctl.core.wait import poll_until


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.mark.parametrize("timeout_s", [0, 3, 10, 12.5, 120])
def test_poll_until_gives_up_within_timeout_plus_interval(timeout_s: float) -> None:
    clock = FakeClock()

    with pytest.raises(WaitTimeoutError):
        poll_until(lambda: None, timeout_s=timeout_s, interval_s=5, clock=clock, sleep=clock.sleep)

    assert clock.now - 1000.0 <= timeout_s + 5
    assert all(s <= 5 for s in clock.sleeps)


def test_poll_until_returns_first_result() -> None:
    clock = FakeClock()
    answers = iter([None, None, "can0"])

    result = poll_until(lambda: next(answers), timeout_s=60, interval_s=5, clock=clock, sleep=clock.sleep)

    assert result == "can0"
    assert clock.sleeps == [5, 5]


def test_poll_until_reports_retries() -> None:
    clock = FakeClock()
    remaining: list[float] = []

    with pytest.raises(WaitTimeoutError):
        poll_until(
            lambda: None,
            timeout_s=10,
            interval_s=5,
            on_retry=remaining.append,
            clock=clock,
            sleep=clock.sleep,
        )

    assert remaining == [10, 5]


def test_poll_until_cancel() -> None:
    cancel = threading.Event()
    calls = []

    def probe():
        calls.append(1)
        cancel.set()
        return None

    with pytest.raises(WaitCancelledError):
        poll_until(probe, timeout_s=60, interval_s=30, cancel=cancel)

    assert len(calls) == 1


def test_poll_until_rejects_bad_interval() -> None:
    with pytest.raises(ValueError):
        poll_until(lambda: None, timeout_s=1, interval_s=0)


def _fast_poll(monkeypatch: pytest.MonkeyPatch) -> FakeClock:
    clock = FakeClock()

    def fake_poll_until(probe, **kwargs):
        return poll_until(probe, clock=clock, sleep=clock.sleep, **kwargs)

    monkeypatch.setattr(service_module, "poll_until", fake_poll_until)
    return clock


def test_wait_requires_bus_address(fake_links) -> None:
    links = fake_links({})
    service = CanLinkService(query=links, mutator=links)

    with pytest.raises(InputValidationError):
        service.wait_and_configure("can0", 1000000, None, 10)

    with pytest.raises(InputValidationError):
        service.wait_for_device("", 10)


def test_wait_times_out_when_device_never_appears(monkeypatch: pytest.MonkeyPatch, fake_links) -> None:
    clock = _fast_poll(monkeypatch)
    links = fake_links({"can0": {"bus": "1-2:1.0", "state": "down"}})
    service = CanLinkService(query=links, mutator=links)

    with pytest.raises(WaitTimeoutError) as exc:
        service.wait_and_configure("can0", 1000000, "1-3:1.0", 10)

    assert "Timeout: CAN device not found within 10 seconds." == str(exc.value)
    assert 10 <= clock.now - 1000.0 <= 15
    assert links.calls == []


def test_device_appearing_later_is_configured_once(monkeypatch: pytest.MonkeyPatch, fake_links) -> None:
    _fast_poll(monkeypatch)
    links = fake_links({})
    service = CanLinkService(query=links, mutator=links)
    configure_calls = []
    real_configure = service.configure_single

    def counting_configure(*args):
        configure_calls.append(args)
        return real_configure(*args)

    monkeypatch.setattr(service, "configure_single", counting_configure)

    probes = {"count": 0}
    real_list = links.list_can_interfaces

    def list_appearing():
        probes["count"] += 1
        if probes["count"] == 3:
            links.interfaces["can4"] = {"bus": "1-3:1.0", "state": "down", "bitrate": None}
        return real_list()

    monkeypatch.setattr(links, "list_can_interfaces", list_appearing)

    found = []
    result = service.wait_and_configure("can0", 500000, "1-3:1.0", 60, on_found=found.append)

    assert found == ["can4"]
    assert configure_calls == [("can0", 500000, "1-3:1.0")]
    assert result.final_name == "can0"
    assert links.interfaces["can0"] == {"bus": "1-3:1.0", "state": "up", "bitrate": 500000}


def test_configuration_failure_after_wait_is_delegation_error(monkeypatch: pytest.MonkeyPatch, fake_links) -> None:
    _fast_poll(monkeypatch)
    links = fake_links({"can0": {"bus": "1-3:1.0", "state": "down"}}, driver_fails=True)
    service = CanLinkService(query=links, mutator=links)

    with pytest.raises(DelegationError) as exc:
        service.wait_and_configure("can0", 1000000, "1-3:1.0", 10)

    assert "gs_usb" in str(exc.value)
    assert links.mutations == []
