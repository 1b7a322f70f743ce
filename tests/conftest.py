import pytest

from tests.factories import T0


@pytest.fixture
def now():
    return T0


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Isolate config, data and backups from the real home directory
    monkeypatch.setenv("HOME", str(home))
    for var in ("DATA_PATH", "BACKUP_DIR", "GITHUB_TOKEN", "GITHUB_OWNER", "GITHUB_REPO"):
        monkeypatch.delenv(f"WORDMEMORY_{var}", raising=False)
    return home
