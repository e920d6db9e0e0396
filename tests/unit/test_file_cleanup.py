"""
Unit tests for FileCleanup background deletes.
"""

import pytest

from src.domain.cleanup import FileCleanup
from tests.fakes import FakeFileStore


class TestDiscard:
    def test_nothing_to_delete_schedules_nothing(self, file_cleanup: FileCleanup) -> None:
        assert file_cleanup.discard([], "empty") is None
        assert file_cleanup.discard([None, ""], "blank") is None

    def test_deletes_every_url(self, file_store: FakeFileStore, file_cleanup: FileCleanup) -> None:
        urls = [file_store.upload(b"x", "image/png", "photos", f"{i}.png") for i in range(3)]

        future = file_cleanup.discard(urls, "test")

        assert future is not None
        assert future.result(timeout=5) == []
        assert sorted(file_store.deleted) == sorted(urls)

    def test_failures_are_reported_not_raised(
        self,
        file_store: FakeFileStore,
        file_cleanup: FileCleanup,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        good = file_store.upload(b"x", "image/png", "photos", "good.png")
        bad = file_store.upload(b"x", "image/png", "photos", "bad.png")
        file_store.fail_delete.add(bad)

        future = file_cleanup.discard([bad, good], "test")

        assert future.result(timeout=5) == [bad]
        assert file_store.deleted == [good]
        assert "Failed to delete file" in caplog.text
