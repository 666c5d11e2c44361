"""Tests for the async SQLite vector store."""

import pytest

from vault_mcp.errors import StoreError
from vault_mcp.indexer import SQLiteVectorStore, VectorStore
from vault_mcp.indexer.models import Chunk, Document, document_id_for


def make_document(path: str) -> tuple[Document, list[Chunk]]:
    doc = Document(id=document_id_for(path), path=path, title=path, content_hash="h")
    chunks = [Chunk(document_id=doc.id, chunk_order=0, content=path, embedding=[1.0, 0.0])]
    return doc, chunks


def test_implements_protocol(store: SQLiteVectorStore):
    assert isinstance(store, VectorStore)


@pytest.mark.asyncio
async def test_replace_and_query(store: SQLiteVectorStore):
    await store.replace_document(*make_document("a.md"))

    assert [d.path for d in await store.list_documents()] == ["a.md"]
    doc = await store.get_document("a.md")
    assert doc is not None
    assert len(await store.get_chunks(doc.id)) == 1
    assert await store.count_chunks() == 1

    results = await store.query([1.0, 0.0], top_k=5)
    assert [r.document_path for r in results] == ["a.md"]
    assert results[0].similarity == pytest.approx(1.0)


@pytest.mark.asyncio
async def test_set_public_and_delete(store: SQLiteVectorStore):
    await store.replace_document(*make_document("a.md"))

    await store.set_public("a.md", True)
    assert (await store.get_document("a.md")).public is True

    assert await store.delete_document("a.md") is True
    assert await store.get_document("a.md") is None
    assert await store.count_chunks() == 0


@pytest.mark.asyncio
async def test_write_errors_become_store_errors(store: SQLiteVectorStore):
    await store.replace_document(*make_document("a.md"))

    doc, chunks = make_document("b.md")
    chunks[0].embedding = [1.0, 0.0, 0.0]
    with pytest.raises(StoreError, match="replace_document failed"):
        await store.replace_document(doc, chunks)


@pytest.mark.asyncio
async def test_query_dimension_mismatch_is_store_error(store: SQLiteVectorStore):
    await store.replace_document(*make_document("a.md"))
    with pytest.raises(StoreError):
        await store.query([1.0], top_k=3)
