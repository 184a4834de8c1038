import importlib.util
from pathlib import Path

import pytest

from stockwatch.services.alerts import generation_service

SCRIPT = Path(__file__).resolve().parents[1] / "scripts" / "generate_stock_alerts.py"


@pytest.fixture
def script():
    spec = importlib.util.spec_from_file_location("generate_stock_alerts", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_sweep_exits_zero(script, make_component, capsys):
    make_component(quantity=0)

    assert script.run() == 0
    assert "1 alert(s) generated" in capsys.readouterr().out


def test_failed_items_exit_two(script, make_component, monkeypatch, capsys):
    component = make_component(quantity=0)

    def broken(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(generation_service, "classify_stock", broken)

    assert script.run() == 2
    assert f"failed component {component.id}" in capsys.readouterr().out


def test_unknown_component_exits_one(script):
    assert script.run(component_id=999) == 1
