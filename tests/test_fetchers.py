import asyncio
import json
from pathlib import Path

import pytest

from ytscribe.errors import DownloadError, FailureReason, InvalidInput
from ytscribe.services import download_utils, fetchers


@pytest.mark.parametrize("url", [
    "https://youtube.com/watch?v=abc",
    "https://www.youtube.com/watch?v=abc",
    "https://youtu.be/dQw4w9WgXcQ",
    "http://WWW.YouTube.com/shorts/abc",
    "  https://youtu.be/abc  ",
])
def test_validate_accepts_allowed_hosts(url):
    assert fetchers.validate_youtube_url(url) == url.strip()


@pytest.mark.parametrize("url", [None, "", "   ", "https://music.youtube.com/watch?v=a", "https://example.com/?v=a", "youtube.com/watch?v=a"])
def test_validate_rejects_everything_else(url):
    with pytest.raises(InvalidInput) as exc:
        fetchers.validate_youtube_url(url)
    assert exc.value.status_code == 400


@pytest.mark.parametrize("url,expected", [
    ("https://www.youtube.com/watch?v=dQw4w9WgXcQ&t=42", "dQw4w9WgXcQ"),
    ("https://youtu.be/dQw4w9WgXcQ?si=x", "dQw4w9WgXcQ"),
    ("https://youtube.com/shorts/abc123", "abc123"),
    ("https://www.youtube.com/embed/xyz", "xyz"),
    ("https://www.youtube.com/channel/UC123", None),
    ("https://youtu.be/", None),
])
def test_extract_video_id(url, expected):
    assert fetchers.extract_video_id(url) == expected


def test_scratch_stem_uses_id_or_timestamp():
    assert download_utils.scratch_stem("dQw4w9WgXcQ", now=1700000000.5) == "dQw4w9WgXcQ_1700000000500"
    assert download_utils.scratch_stem(None, now=1700000000) == "video_1700000000000_1700000000000"
    assert download_utils.scratch_stem("../../etc", now=1) == "etc_1000"


def test_classify_ytdlp_failure():
    assert download_utils.classify_ytdlp_failure("ERROR: [youtube] x: Private video") == FailureReason.VIDEO_UNAVAILABLE
    assert download_utils.classify_ytdlp_failure("ERROR: HTTP Error 429: Too Many Requests") == FailureReason.RATE_LIMITED
    assert download_utils.classify_ytdlp_failure("ERROR: Unable to download webpage: timed out") == FailureReason.NETWORK
    assert download_utils.classify_ytdlp_failure("ERROR: something odd") is None


@pytest.mark.asyncio
async def test_fetch_video_info_parses_metadata(monkeypatch):
    payload = {"title": "T", "duration": 212.0, "uploader": "U", "thumbnail": "https://i/x.jpg"}

    async def fake_run(args, request_id):
        assert "--skip-download" in args
        return 0, json.dumps(payload) + "\n", ""

    monkeypatch.setattr(fetchers, "run_ytdlp", fake_run)
    info = await fetchers.fetch_video_info("https://youtu.be/abc", "r1")
    assert info.title == "T"
    assert info.duration_seconds == 212
    assert info.channel == "U"
    assert info.duration_minutes == 3


@pytest.mark.asyncio
async def test_fetch_video_info_failure_is_invalid_input(monkeypatch):
    async def fake_run(args, request_id):
        return 1, "", "ERROR: [youtube] abc: Video unavailable\n"

    monkeypatch.setattr(fetchers, "run_ytdlp", fake_run)
    with pytest.raises(InvalidInput) as exc:
        await fetchers.fetch_video_info("https://youtu.be/abc", "r1")
    assert exc.value.status_code == 400
    assert exc.value.message.startswith("Não foi possível acessar o vídeo")
    assert exc.value.detail == "[youtube] abc: Video unavailable"


@pytest.mark.asyncio
async def test_download_audio_returns_written_file(monkeypatch, tmp_path):
    async def fake_run(args, request_id):
        template = args[args.index("-o") + 1]
        out = template.replace("%(ext)s", "webm")
        with open(out, "wb") as f:
            f.write(b"data")
        return 0, json.dumps({"requested_downloads": [{"filepath": out}]}), ""

    monkeypatch.setattr(fetchers, "run_ytdlp", fake_run)
    path = await fetchers.download_audio("https://youtu.be/dQw4w9WgXcQ", tmp_path, "r1")
    assert path.exists()
    assert path.name.startswith("dQw4w9WgXcQ_")
    assert path.suffix == ".webm"


@pytest.mark.asyncio
async def test_download_failure_removes_partial_file(monkeypatch, tmp_path):
    async def fake_run(args, request_id):
        template = args[args.index("-o") + 1]
        with open(template.replace("%(ext)s", "webm"), "wb") as f:
            f.write(b"partial")
        return 1, "", "ERROR: unable to write data\n"

    other = tmp_path / "someone_else_1.webm"
    other.write_bytes(b"keep")
    monkeypatch.setattr(fetchers, "run_ytdlp", fake_run)
    with pytest.raises(DownloadError) as exc:
        await fetchers.download_audio("https://youtu.be/dQw4w9WgXcQ", tmp_path, "r1")
    assert exc.value.status_code == 500
    assert [p.name for p in tmp_path.iterdir()] == ["someone_else_1.webm"]


@pytest.mark.asyncio
async def test_download_without_output_file_is_error(monkeypatch, tmp_path):
    async def fake_run(args, request_id):
        return 0, "{}", ""

    monkeypatch.setattr(fetchers, "run_ytdlp", fake_run)
    with pytest.raises(DownloadError):
        await fetchers.download_audio("https://youtu.be/abc", tmp_path, "r1")


@pytest.mark.asyncio
@pytest.mark.parametrize("stdout", ["null\n", "[1, 2]\n", "\"text\"\n"])
async def test_fetch_video_info_non_object_output_is_invalid_input(monkeypatch, stdout):
    async def fake_run(args, request_id):
        return 0, stdout, ""

    monkeypatch.setattr(fetchers, "run_ytdlp", fake_run)
    with pytest.raises(InvalidInput) as exc:
        await fetchers.fetch_video_info("https://youtu.be/abc", "r1")
    assert exc.value.status_code == 400


@pytest.mark.asyncio
async def test_download_failure_with_undeletable_partial_is_logged(monkeypatch, caplog, tmp_path):
    async def fake_run(args, request_id):
        template = args[args.index("-o") + 1]
        with open(template.replace("%(ext)s", "webm"), "wb") as f:
            f.write(b"partial")
        return 1, "", "ERROR: unable to write data\n"

    def denied_unlink(self, *args, **kwargs):
        raise PermissionError("denied")

    monkeypatch.setattr(fetchers, "run_ytdlp", fake_run)
    monkeypatch.setattr(Path, "unlink", denied_unlink)
    with pytest.raises(DownloadError):
        await fetchers.download_audio("https://youtu.be/dQw4w9WgXcQ", tmp_path, "r1")
    assert "failed to remove scratch file" in [rec.getMessage() for rec in caplog.records]


class _HangingProcess:
    def __init__(self):
        self.killed = False
        self.waited = False
        self.returncode = None

    async def communicate(self):
        await asyncio.Event().wait()

    def kill(self):
        self.killed = True

    async def wait(self):
        self.waited = True
        return -9


@pytest.mark.asyncio
async def test_cancelled_ytdlp_run_kills_child(monkeypatch):
    proc = _HangingProcess()

    async def fake_exec(*cmd, **kwargs):
        return proc

    monkeypatch.setattr(download_utils.asyncio, "create_subprocess_exec", fake_exec)
    task = asyncio.create_task(download_utils.run_ytdlp(["https://youtu.be/abc"], "r1"))
    await asyncio.sleep(0)
    await asyncio.sleep(0)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert proc.killed
    assert proc.waited
