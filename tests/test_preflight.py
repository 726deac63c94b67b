"""Tests for the desktop preflight checks."""

import sys

import pytest

from mindcanvas.preflight import run_preflight, run_preflight_or_die


@pytest.fixture
def linux(monkeypatch):
    monkeypatch.delenv("MINDCANVAS_SKIP_PREFLIGHT", raising=False)
    monkeypatch.setattr(sys, "platform", "linux")
    return monkeypatch


def test_skip_env(monkeypatch):
    monkeypatch.setenv("MINDCANVAS_SKIP_PREFLIGHT", "1")
    monkeypatch.setattr(sys, "platform", "darwin")
    assert run_preflight().ok


def test_non_linux_fails(linux):
    linux.setattr(sys, "platform", "win32")
    result = run_preflight(check_deps=False)
    assert not result.ok
    assert "win32" in result.message


def test_headless_points_to_cli(linux):
    linux.delenv("WAYLAND_DISPLAY", raising=False)
    linux.delenv("DISPLAY", raising=False)
    result = run_preflight(check_deps=False)
    assert not result.ok
    assert "mindcanvas-cli" in result.message


def test_display_present(linux):
    linux.setenv("WAYLAND_DISPLAY", "wayland-0")
    assert run_preflight(check_deps=False).ok


def test_or_die_exits(linux, capsys):
    linux.delenv("WAYLAND_DISPLAY", raising=False)
    linux.delenv("DISPLAY", raising=False)
    with pytest.raises(SystemExit):
        run_preflight_or_die(check_deps=False)
    assert "preflight check failed" in capsys.readouterr().err
