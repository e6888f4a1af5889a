# tests/conftest.py

import io
import json
import zipfile

import pytest


class FakeResponse:
    """Minimal stand-in for the object returned by urlopen()."""

    def __init__(self, body: bytes, headers=None):
        self._buf = io.BytesIO(body)
        if headers is None:
            headers = {"Content-Length": str(len(body))}
        self.headers = headers

    def read(self, size=-1):
        return self._buf.read(size)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


def build_zip(entries: dict) -> bytes:
    """Build an in-memory zip from {member_name: text}."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
        for name, content in entries.items():
            zf.writestr(name, content)
    return buf.getvalue()


def json_response(payload) -> FakeResponse:
    return FakeResponse(json.dumps(payload).encode("utf-8"))


@pytest.fixture
def addons_root(tmp_path):
    """An AddOns directory with stale copies of A and B."""
    root = tmp_path / "AddOns"
    for name in ("A", "B"):
        (root / name).mkdir(parents=True)
        (root / name / "old.lua").write_text("-- old")
    return root


@pytest.fixture
def scratch_parent(tmp_path):
    path = tmp_path / "scratch"
    path.mkdir()
    return path
