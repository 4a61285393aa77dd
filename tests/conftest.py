import pytest


@pytest.fixture(autouse=True)
def test_env(monkeypatch, tmp_path):
    """Isolated settings per test: test environment reloads config on every call."""
    scratch = tmp_path / "scratch"
    monkeypatch.setenv("ENVIRONMENT", "test")
    monkeypatch.delenv("NODE_ENV", raising=False)
    monkeypatch.setenv("TEMP_DIR", str(scratch))
    monkeypatch.setenv("ASSEMBLYAI_API_KEY", "test-key")
    monkeypatch.setenv("ASSEMBLYAI_BASE_URL", "https://assembly.test")
    monkeypatch.setenv("ASSEMBLYAI_POLL_INTERVAL_SECONDS", "0")
    monkeypatch.setenv("ASSEMBLYAI_POLL_TIMEOUT_SECONDS", "5")
    monkeypatch.delenv("MAX_VIDEO_DURATION_MINUTES", raising=False)
    return scratch
