"""Shared fakes: an in-memory Cloud Storage bucket and a mocked speech provider."""
from __future__ import annotations

from typing import Dict
from unittest.mock import MagicMock

import pytest
from google.api_core.exceptions import Forbidden, NotFound

from readaloud.core.config import GoogleConfig, Settings
from readaloud.services.tts_service import SpeechService, reset_service
from readaloud.tts.jobs import JobStatus
from readaloud.tts.provider import GoogleSpeechProvider
from readaloud.tts.storage import ArtifactStore

TEST_PROJECT = "test-project"
TEST_BUCKET = "test-bucket"
OPERATION_NAME = "projects/test-project/locations/global/operations/123"
MP3_BYTES = b"ID3\x04\x00fake-mp3-payload"
WAV_BYTES = b"RIFF\x24\x00\x00\x00WAVEfmt fake-wav-payload"


class FakeBlob:
    def __init__(self, bucket: "FakeBucket", name: str):
        self.bucket = bucket
        self.name = name

    def exists(self, timeout=None) -> bool:
        return self.name in self.bucket.objects

    def download_as_bytes(self, timeout=None) -> bytes:
        if self.name not in self.bucket.objects:
            raise NotFound(f"No such object: {self.bucket.name}/{self.name}")
        self.bucket.downloads.append(self.name)
        return self.bucket.objects[self.name]

    def delete(self, timeout=None) -> None:
        if self.bucket.fail_delete:
            raise Forbidden("storage.objects.delete denied")
        if self.name not in self.bucket.objects:
            raise NotFound(f"No such object: {self.bucket.name}/{self.name}")
        del self.bucket.objects[self.name]
        self.bucket.deletes.append(self.name)


class FakeBucket:
    def __init__(self, name: str = TEST_BUCKET):
        self.name = name
        self.objects: Dict[str, bytes] = {}
        self.downloads: list[str] = []
        self.deletes: list[str] = []
        self.fail_delete = False

    def blob(self, name: str) -> FakeBlob:
        return FakeBlob(self, name)


class FakeStorageClient:
    def __init__(self, bucket: FakeBucket):
        self._bucket = bucket
        self.closed = False

    def bucket(self, name: str) -> FakeBucket:
        assert name == self._bucket.name
        return self._bucket

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def test_settings():
    return Settings(raw={
        "google": {
            "project_id": TEST_PROJECT,
            "bucket_name": TEST_BUCKET,
        },
        "jobs": {
            "status_cache_max_items": 16,
            "status_cache_ttl_seconds": 60,
        },
        "logging": {
            "level": 1,
            "text_preview_chars": 20,
        },
    })


@pytest.fixture
def fake_bucket():
    return FakeBucket()


@pytest.fixture
def artifact_store(fake_bucket):
    google = GoogleConfig(project_id=TEST_PROJECT, bucket_name=TEST_BUCKET)
    return ArtifactStore(google, timeout_s=5.0, client=FakeStorageClient(fake_bucket))


@pytest.fixture
def mock_provider():
    provider = MagicMock(spec=GoogleSpeechProvider)
    provider.synthesize_mp3.return_value = MP3_BYTES
    provider.start_long_audio.return_value = OPERATION_NAME
    provider.get_job_status.return_value = JobStatus.processing(40.0)
    provider.get_info.return_value = {"provider": "google"}
    return provider


@pytest.fixture
def mock_extractor():
    return MagicMock()


@pytest.fixture
def service(test_settings, mock_provider, artifact_store, mock_extractor):
    svc = SpeechService(
        test_settings,
        provider=mock_provider,
        store=artifact_store,
        extractor=mock_extractor,
    )
    yield svc
    reset_service()
