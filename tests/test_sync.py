import threading

import pytest

from imagesync.classifier import SyncMode
from imagesync.config import FailurePolicy, SyncConfig
from imagesync.endpoints import OciLayoutDir, SingleImage
from imagesync.errors import CopyError, DetectionError, ListingError
from imagesync.report import SyncStatus
from imagesync.sync import run_sync


class FakeBackend:
    def __init__(self, tags=None, fail_copies=()):
        self.tags = tags or {}
        self.fail_copies = set(fail_copies)
        self.copies = []
        self.listed = []
        self._lock = threading.Lock()

    def list_tags(self, repository, tls_verify):
        self.listed.append((str(repository), tls_verify))
        name = str(repository)
        if name not in self.tags:
            raise ListingError(name, "name unknown")
        return list(self.tags[name])

    def copy(self, source, destination, tls):
        with self._lock:
            self.copies.append((str(source), str(destination), tls))
        if str(source) in self.fail_copies:
            raise CopyError(str(source), str(destination), "manifest unknown")


SRC = "registry.example.com/app"
DST = "mirror.example.com/app"


def copied_tags(backend):
    return sorted(src.rsplit(":", 1)[1] for src, _, _ in backend.copies)


def test_repository_sync_copies_missing_tags():
    backend = FakeBackend({SRC: ["a", "b", "c", "latest"], DST: ["a"]})
    config = SyncConfig(skip_tags=["b"], tags_include_pattern="^[ac]$", max_concurrent_tags=3)

    report = run_sync(SRC, DST, config, backend=backend)

    assert report.mode == SyncMode.REPOSITORY
    assert report.status == SyncStatus.SYNCED
    assert report.plan.tags == ("c",)
    assert backend.copies[0][:2] == (f"{SRC}:c", f"{DST}:c")


def test_already_synced_skips_scheduler(mocker):
    backend = FakeBackend({SRC: ["1.0", "1.1"], DST: ["1.1", "1.0"]})
    scheduler = mocker.patch("imagesync.sync.run_bounded")

    report = run_sync(SRC, DST, SyncConfig(), backend=backend)

    assert report.status == SyncStatus.ALREADY_SYNCED
    assert report.plan.empty
    scheduler.assert_not_called()
    assert backend.copies == []


def test_missing_destination_repository_copies_everything():
    backend = FakeBackend({SRC: ["2", "1", "3"]})

    report = run_sync(SRC, DST, SyncConfig(max_concurrent_tags=2), backend=backend)

    assert report.plan.tags == ("1", "2", "3")
    assert copied_tags(backend) == ["1", "2", "3"]


def test_overwrite_does_not_list_destination():
    backend = FakeBackend({SRC: ["1"], DST: ["1"]})

    report = run_sync(SRC, DST, SyncConfig(overwrite=True), backend=backend)

    assert report.plan.tags == ("1",)
    assert [name for name, _ in backend.listed] == [SRC]


def test_source_listing_failure_is_fatal():
    with pytest.raises(ListingError):
        run_sync(SRC, DST, SyncConfig(), backend=FakeBackend())


def test_tls_flags_reach_backend():
    backend = FakeBackend({SRC: ["1"]})
    run_sync(SRC, DST, SyncConfig(source_strict_tls=True), backend=backend)

    assert backend.listed == [(SRC, True), (DST, False)]
    tls = backend.copies[0][2]
    assert tls.source_verify is True
    assert tls.destination_verify is False


def test_best_effort_partial_failure():
    backend = FakeBackend({SRC: ["1", "2", "3"]}, fail_copies={f"{SRC}:2"})

    report = run_sync(SRC, DST, SyncConfig(max_concurrent_tags=2), backend=backend)

    assert report.status == SyncStatus.PARTIAL
    assert report.failed_tags == ["2"]
    assert copied_tags(backend) == ["1", "2", "3"]


def test_best_effort_all_failed_raises():
    backend = FakeBackend({SRC: ["1", "2"]}, fail_copies={f"{SRC}:1", f"{SRC}:2"})
    with pytest.raises(CopyError, match="2 of 2 tags failed"):
        run_sync(SRC, DST, SyncConfig(max_concurrent_tags=2), backend=backend)


def test_fail_fast_raises_first_error():
    backend = FakeBackend({SRC: ["1", "2", "3"]}, fail_copies={f"{SRC}:1"})
    config = SyncConfig(failure_policy=FailurePolicy.FAIL_FAST)

    with pytest.raises(CopyError) as excinfo:
        run_sync(SRC, DST, config, backend=backend)

    assert isinstance(excinfo.value.__cause__, CopyError)
    # A single worker stops right after the first tag.
    assert copied_tags(backend) == ["1"]


def test_single_image_copy():
    backend = FakeBackend()

    report = run_sync(f"{SRC}:1.0", DST, SyncConfig(), backend=backend)

    assert report.mode == SyncMode.SINGLE_IMAGE
    assert report.status == SyncStatus.SYNCED
    assert report.plan is None
    assert backend.listed == []
    assert backend.copies[0][:2] == (f"{SRC}:1.0", f"{DST}:1.0")


def test_oci_layout_copy(tmp_path):
    backend = FakeBackend()
    calls = []
    backend.copy = lambda source, destination, tls: calls.append((source, destination))

    report = run_sync(str(tmp_path), f"{DST}:v1", SyncConfig(), backend=backend)

    assert report.mode == SyncMode.OCI_LAYOUT
    assert calls == [(OciLayoutDir(tmp_path), SingleImage(calls[0][1].reference))]
    assert str(calls[0][1]) == f"{DST}:v1"


def test_single_copy_failure_propagates():
    backend = FakeBackend(fail_copies={f"{SRC}:1.0"})
    with pytest.raises(CopyError):
        run_sync(f"{SRC}:1.0", DST, SyncConfig(), backend=backend)


def test_detection_error_before_any_backend_call():
    backend = FakeBackend({SRC: ["1"]})
    with pytest.raises(DetectionError):
        run_sync(SRC, f"{DST}:latest", SyncConfig(), backend=backend)
    assert backend.listed == []
    assert backend.copies == []


def test_summary_is_logged_before_copying(caplog):
    backend = FakeBackend({SRC: ["1", "2"]})
    with caplog.at_level("INFO", logger="imagesync.sync"):
        run_sync(SRC, DST, SyncConfig(), backend=backend)
    assert (
        f"Starting image sync with total-tags=2 tags=['1', '2'] source={SRC} destination={DST}"
        in caplog.text
    )


def test_report_save(tmp_path):
    backend = FakeBackend({SRC: ["1", "2"]}, fail_copies={f"{SRC}:1"})
    report = run_sync(SRC, DST, SyncConfig(), backend=backend)

    path = report.save(tmp_path / "out" / "report.json")
    data = report.to_dict()

    assert path.exists()
    assert data["status"] == "partial"
    assert data["plan"]["tags"] == ["1", "2"]
    assert data["tags"][0]["status"] == "failed"
    assert "manifest unknown" in data["tags"][0]["error"]
    assert data["tags"][1] == {"tag": "2", "status": "copied"}
