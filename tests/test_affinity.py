import os

import psutil

from oscost.utils.affinity import AffinityManager


def test_disabled_manager_does_nothing(no_pinning):
    assert AffinityManager(enabled=False).apply() is False
    assert no_pinning == []


def test_pins_current_process(no_pinning):
    assert AffinityManager(enabled=True, cpu=0).apply() is True
    assert no_pinning == [(os.getpid(), {0})]


def test_falls_back_to_psutil(monkeypatch):
    pinned = []

    def refuse(pid, cpus):
        raise OSError(22, "Invalid argument")

    monkeypatch.setattr(os, "sched_setaffinity", refuse, raising=False)
    monkeypatch.setattr(psutil.Process, "cpu_affinity", lambda self, cpus: pinned.append(cpus), raising=False)
    assert AffinityManager(enabled=True, cpu=0).apply() is True
    assert pinned == [[0]]


def test_failure_is_logged_once_and_not_raised(monkeypatch):
    messages = []

    def refuse(*args):
        raise PermissionError(1, "Operation not permitted")

    monkeypatch.setattr(os, "sched_setaffinity", refuse, raising=False)
    monkeypatch.setattr(psutil.Process, "cpu_affinity", lambda self, cpus: refuse(), raising=False)
    manager = AffinityManager(enabled=True, cpu=0, logger=messages.append)
    assert manager.apply() is False
    assert manager.apply() is False
    assert len(messages) == 1
    assert "Continuing unpinned" in messages[0]
