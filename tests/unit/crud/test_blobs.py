"""Unit tests for crud/blobs.py"""

import pytest

from quizdraft.crud.blobs import LocalBlobStore, MemoryBlobStore
from quizdraft.errors import PersistenceError


@pytest.mark.asyncio
async def test_memory_blob_store_returns_url():
    blobs = MemoryBlobStore(base_url="https://cdn.test")
    url = await blobs.upload("quizzes/q1/blocks/s1/b1.png", b"data", "image/png")
    assert url == "https://cdn.test/quizzes/q1/blocks/s1/b1.png"
    assert blobs.blobs["quizzes/q1/blocks/s1/b1.png"] == (b"data", "image/png")
    assert blobs.uploads == 1


@pytest.mark.asyncio
async def test_local_blob_store_writes_file(tmp_path):
    blobs = LocalBlobStore(tmp_path / "blobs", base_url="https://static.test/")
    url = await blobs.upload("quizzes/q1/options/s1/b1/i1.jpg", b"\xff\xd8", "image/jpeg")
    assert url == "https://static.test/quizzes/q1/options/s1/b1/i1.jpg"
    assert (tmp_path / "blobs/quizzes/q1/options/s1/b1/i1.jpg").read_bytes() == b"\xff\xd8"


@pytest.mark.asyncio
async def test_local_blob_store_defaults_to_file_urls(tmp_path):
    blobs = LocalBlobStore(tmp_path)
    url = await blobs.upload("a/b.png", b"x", "image/png")
    assert url.startswith("file://")
    assert url.endswith("/a/b.png")


@pytest.mark.asyncio
@pytest.mark.parametrize("path", ["/etc/passwd", "quizzes/../../escape.png", ""])
async def test_blob_paths_must_stay_inside_store(tmp_path, path):
    with pytest.raises(PersistenceError):
        await LocalBlobStore(tmp_path).upload(path, b"x", "image/png")
    with pytest.raises(PersistenceError):
        await MemoryBlobStore().upload(path, b"x", "image/png")
