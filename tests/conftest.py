"""Shared test fixtures."""

import re
import tempfile
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def stitch_manifest_path() -> Path:
    return FIXTURES_DIR / "stitch_manifest.json"


@pytest.fixture
def retime_manifest_path() -> Path:
    return FIXTURES_DIR / "retime_manifest.json"


class FakeFFmpeg:
    """Stands in for subprocess.run inside easecut.ffutil.

    Extraction calls write a small file at the destination; encode calls write
    the partial output.  Failures can be injected per timestamp or for the
    encode step.
    """

    def __init__(self):
        self.calls: list[list[str]] = []
        self.fail_extract = None      # Callable[[float], bool]
        self.fail_input = None        # file name whose extractions all fail
        self.encode_returncode = 0
        self.encoded_frames: list[str] = []
        self.encode_cmd: list[str] | None = None

    @property
    def extract_calls(self) -> list[list[str]]:
        return [c for c in self.calls if c[0] == "ffmpeg" and "-ss" in c]

    def __call__(self, cmd, **kwargs):
        self.calls.append(list(cmd))
        out = Path(cmd[-1])

        if "-ss" in cmd:
            ts = float(cmd[cmd.index("-ss") + 1])
            source = Path(cmd[cmd.index("-i") + 1]).name
            if source == self.fail_input or (self.fail_extract and self.fail_extract(ts)):
                return MagicMock(returncode=1, stdout="", stderr="decode error")
            out.write_bytes(b"PNG")
            return MagicMock(returncode=0, stdout="", stderr="")

        # encode
        self.encode_cmd = list(cmd)
        pattern = Path(cmd[cmd.index("-i") + 1])
        self.encoded_frames = sorted(p.name for p in pattern.parent.glob("frame_*.png"))
        if self.encode_returncode != 0:
            out.write_bytes(b"truncated")
            return MagicMock(returncode=self.encode_returncode, stdout="", stderr="encoder exploded")
        out.write_bytes(b"MP4")
        return MagicMock(returncode=0, stdout="", stderr="")

    def frame_numbers(self) -> list[int]:
        return [int(re.search(r"(\d+)", name).group(1)) for name in self.encoded_frames]


@pytest.fixture
def fake_ffmpeg():
    fake = FakeFFmpeg()
    with patch("easecut.ffutil.subprocess.run", side_effect=fake), \
            patch("easecut.ffutil.check_ffmpeg"):
        yield fake


@pytest.fixture
def scratch_root(tmp_path, monkeypatch) -> Path:
    """Point tempfile at a directory the test can inspect for leftovers."""
    root = tmp_path / "scratch"
    root.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(root))
    return root


@pytest.fixture
def make_clip(tmp_path):
    def _make(name: str, content: bytes = b"not really a video") -> Path:
        path = tmp_path / name
        path.write_bytes(content)
        return path
    return _make
