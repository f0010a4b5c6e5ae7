"""Root pytest configuration for thanos-blocks tests."""
import pytest

from thanos_blocks.settings import Settings
from thanos_blocks.storage.context import TransferContext
from thanos_blocks.storage.filesystem import FilesystemBucket

from .helpers.blocks import SCENARIO_BLOCK_ID, write_block
from .storage.fakes.fake_bucket import InMemoryBucket


# Configure pytest markers
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test (requires external services)"
    )


# Keep the developer's environment out of the tests
@pytest.fixture(autouse=True)
def test_env(monkeypatch):
    """Automatically clear bucket-related environment variables."""
    for var in (
        "THANOS_BLOCKS_BUCKET_URL",
        "THANOS_BLOCKS_TIMEOUT",
        "THANOS_BLOCKS_AZURE_BLOB_ENDPOINT",
        "AZURE_STORAGE_CONNECTION_STRING",
        "AZURE_STORAGE_ACCOUNT",
        "AZURE_STORAGE_KEY",
    ):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def ctx():
    """Transfer context without deadline."""
    return TransferContext()


@pytest.fixture
def bucket():
    """Standard fake bucket for testing."""
    return InMemoryBucket()


@pytest.fixture
def fs_bucket(tmp_path):
    """Filesystem bucket rooted in a temporary directory."""
    return FilesystemBucket(tmp_path / "bucket")


@pytest.fixture
def settings(tmp_path):
    """Standard test settings pointing at a filesystem bucket."""
    return Settings(bucket_url=f"file://{(tmp_path / 'bucket').as_posix()}")


@pytest.fixture
def data_dir(tmp_path):
    """Local directory holding block directories."""
    path = tmp_path / "data"
    path.mkdir()
    return path


@pytest.fixture
def scenario_block(data_dir):
    """Block 01ARZ3NDEKTSV4RRFFQ69G5FAV with labels {"replica": "0"}, an index and one chunk."""
    return write_block(data_dir, SCENARIO_BLOCK_ID, labels={"replica": "0"},
                       chunks={"000001": b"chunk-000001"}, index=b"index-content")
