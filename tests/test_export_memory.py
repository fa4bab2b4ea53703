"""Tests for the memory export script."""

import importlib.util
from pathlib import Path

import pytest

from blackjack.memory import MemoryManager


@pytest.fixture
def export_script():
    path = Path(__file__).parent.parent / 'scripts' / 'export_memory.py'
    spec = importlib.util.spec_from_file_location('export_memory', path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_exports_saved_memory(export_script, memory_path, tmp_path, make_session, capsys):
    manager = MemoryManager(memory_path)
    manager.update_performance(make_session(final_rank=1, net_profit=150.0))
    manager.update_experiences([], [make_session()])
    manager.save()

    out_dir = tmp_path / 'exports'
    assert export_script.main(memory_path, str(out_dir)) == 0

    output = capsys.readouterr().out
    assert 'Sessions played:    1' in output
    assert 'Total profit:       150.00' in output
    assert (out_dir / 'sessions.csv').exists()
    assert (out_dir / 'opponents.csv').exists()


def test_summary_only(export_script, memory_path, tmp_path):
    out_dir = tmp_path / 'exports'
    assert export_script.main(memory_path, str(out_dir), write_csv=False) == 0
    assert not out_dir.exists()
