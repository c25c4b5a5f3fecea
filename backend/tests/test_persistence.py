import asyncio

import pytest

from capture_service.capture.errors import ErrorKind
from capture_service.capture.types import CaptureResult, Failure, Success
from capture_service.services.persistence import persist_capture
from capture_service.services.spool import cleanup_spool, spool_capture
from conftest import MemoryStore, png_bytes


def _result(front_ok: bool = True, back_ok: bool = True) -> CaptureResult:
    def view(name: str, ok: bool):
        if ok:
            return Success(name, png_bytes(2, 2), "image/png", 2, 2)
        return Failure(name, ErrorKind.NO_SURFACE, "no canvas")

    return CaptureResult("req", view("front", front_ok), view("back", back_ok))


def test_persists_each_successful_view():
    store = MemoryStore()

    persisted = asyncio.run(persist_capture(_result(), "abc123", store))

    assert persisted.urls() == {
        "front": "https://storage.example.com/captures/abc123_front.png",
        "back": "https://storage.example.com/captures/abc123_back.png",
    }
    assert persisted.front.key == "abc123_front.png"
    assert store.objects["abc123_back.png"][1] == "image/png"
    assert persisted.errors == {}


def test_failed_view_is_never_stored():
    store = MemoryStore()

    persisted = asyncio.run(persist_capture(_result(back_ok=False), "abc123", store))

    assert store.calls == ["abc123_front.png"]
    assert persisted.urls()["back"] is None


def test_store_error_only_affects_its_view():
    store = MemoryStore(fail_keys=("abc123_front.png",))

    persisted = asyncio.run(persist_capture(_result(), "abc123", store))

    assert persisted.urls()["front"] is None
    assert persisted.urls()["back"].endswith("abc123_back.png")
    assert "front" in persisted.errors


def test_spool_then_cleanup(tmp_path):
    paths = spool_capture(_result(back_ok=False), "abc123", tmp_path / "spool")

    assert [path.name for path in paths] == ["abc123_front.png"]
    assert paths[0].read_bytes() == png_bytes(2, 2)

    report = cleanup_spool(paths)

    assert report.ok
    assert report.removed == paths
    assert not paths[0].exists()


def test_cleanup_reports_failures(tmp_path):
    directory = tmp_path / "not-a-file"
    directory.mkdir()

    report = cleanup_spool([directory])

    assert not report.ok
    assert directory in report.failed
    assert directory.exists()


@pytest.mark.parametrize("customization_id", ["../../escaped", "nested/id", "..\\escaped"])
def test_spool_skips_ids_that_escape_the_directory(tmp_path, customization_id):
    spool_dir = tmp_path / "spool" / "inner"

    paths = spool_capture(_result(), customization_id, spool_dir)

    assert paths == []
    assert list(spool_dir.iterdir()) == []
    assert not list(tmp_path.rglob("*.png"))


def test_spool_write_failure_removes_written_copies(tmp_path):
    spool_dir = tmp_path / "spool"
    (spool_dir / "abc123_back.png").mkdir(parents=True)

    with pytest.raises(OSError):
        spool_capture(_result(), "abc123", spool_dir)

    assert not (spool_dir / "abc123_front.png").exists()
