import pytest


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Keep config and log files of every test inside its tmp_path."""
    monkeypatch.setenv("TW_CONFIG", str(tmp_path / "config.json"))
    monkeypatch.setenv("TW_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.delenv("TW_DEBUG", raising=False)
    monkeypatch.delenv("TW_LOG_LEVEL", raising=False)
    return tmp_path
