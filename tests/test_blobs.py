"""Tests for the file blob store."""

import re

import pytest

from blobs import FileBlobStore, BlobStoreError


@pytest.mark.asyncio
async def test_store_and_load(tmp_path):
    store = FileBlobStore(tmp_path / "images")
    reference = await store.store(b"jpeg-bytes")

    assert re.fullmatch(r"\d+-[0-9a-f]{8}\.jpg", reference)
    assert (tmp_path / "images" / reference).read_bytes() == b"jpeg-bytes"
    assert await store.load(reference) == b"jpeg-bytes"


@pytest.mark.asyncio
async def test_references_are_unique(tmp_path):
    store = FileBlobStore(tmp_path)
    assert await store.store(b"a") != await store.store(b"a")


@pytest.mark.asyncio
async def test_missing_blob(tmp_path):
    store = FileBlobStore(tmp_path)
    with pytest.raises(BlobStoreError):
        await store.load("missing.jpg")


@pytest.mark.asyncio
async def test_reference_outside_directory(tmp_path):
    store = FileBlobStore(tmp_path / "images")
    with pytest.raises(BlobStoreError):
        await store.load("../secret.jpg")
