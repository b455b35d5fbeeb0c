import importlib.util
from pathlib import Path

SCRIPT_PATH = Path(__file__).resolve().parents[1] / 'run_dashboard.py'


def _load_launcher():
    spec = importlib.util.spec_from_file_location('run_dashboard_test', SCRIPT_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_launcher_runs_streamlit_on_home_page(monkeypatch):
    module = _load_launcher()
    captured = {}

    def fake_call(command, cwd=None):
        captured['command'] = command
        captured['cwd'] = cwd
        return 0

    monkeypatch.setattr(module.subprocess, 'call', fake_call)
    assert module.main(['--server.port', '8600']) == 0
    assert captured['command'][2:5] == ['streamlit', 'run', str(module.APP)]
    assert captured['command'][-2:] == ['--server.port', '8600']
    assert module.APP.name == 'Home.py'
    assert captured['cwd'] == module.APP.parent
