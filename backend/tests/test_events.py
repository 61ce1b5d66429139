from __future__ import annotations

import logging

import pytest

from streaming.events import ListenerRegistry


def test_listeners_run_in_registration_order():
    reg = ListenerRegistry()
    calls = []
    reg.subscribe(lambda ev: calls.append(("a", ev.type)))
    reg.subscribe(lambda ev: calls.append(("b", ev.type)))
    reg.emit("load", [])
    assert calls == [("a", "load"), ("b", "load")]


def test_unsubscribe_removes_only_its_own_registration():
    reg = ListenerRegistry()
    calls = []

    def listener(ev):
        calls.append(ev.type)

    first = reg.subscribe(listener)
    reg.subscribe(listener)
    first()
    first()  # idempotent
    reg.emit("unload", [])
    assert calls == ["unload"]
    assert len(reg) == 1


def test_listener_may_unsubscribe_itself_during_delivery():
    reg = ListenerRegistry()
    calls = []
    handles = {}

    def once(ev):
        calls.append("once")
        handles["once"]()

    handles["once"] = reg.subscribe(once)
    reg.subscribe(lambda ev: calls.append("after"))
    reg.emit("load", [])
    reg.emit("load", [])
    assert calls == ["once", "after", "after"]


def test_failing_listener_is_isolated(caplog):
    reg = ListenerRegistry()
    calls = []

    def boom(ev):
        raise RuntimeError("renderer exploded")

    reg.subscribe(boom)
    reg.subscribe(lambda ev: calls.append(ev.type))
    with caplog.at_level(logging.ERROR, logger="streaming.events"):
        reg.emit("load", [])
    assert calls == ["load"]
    assert any("listener" in r.getMessage() for r in caplog.records)


def test_non_callable_listener_is_rejected():
    with pytest.raises(TypeError):
        ListenerRegistry().subscribe("not a function")  # type: ignore[arg-type]
