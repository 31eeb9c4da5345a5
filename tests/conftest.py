import pytest
from fastapi.testclient import TestClient

from media_intake.core.config import Settings
from media_intake.main import create_app
from media_intake.services.storage import LocalBucket
from media_intake.services.urls import DeliveryConfig

AUTH_KEY = "test-secret-key-12345"


def make_settings(tmp_path, **overrides) -> Settings:
    values = dict(
        auth_key=AUTH_KEY,
        image_hostname="images.example.test",
        files_hostname="files.example.test",
        upload_hostname="upload.example.test",
        local_storage_path=str(tmp_path / "bucket"),
        database_url=f"sqlite:///{tmp_path / 'index.db'}",
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture()
def settings(tmp_path):
    return make_settings(tmp_path)


@pytest.fixture()
def bucket(settings):
    return LocalBucket(settings.local_storage_path)


@pytest.fixture()
def delivery(settings):
    return DeliveryConfig.from_settings(settings)


@pytest.fixture()
def client(settings, bucket):
    return TestClient(create_app(settings, bucket=bucket))
