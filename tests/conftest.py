import pytest


@pytest.fixture
def config_home(tmp_path, monkeypatch):
    """Point the settings module at a temporary config directory."""
    monkeypatch.setattr("circle_crop_tool.settings.config_dir", lambda: tmp_path)
    return tmp_path
