"""
Process Scan Platform
Document retrieval index.

Paragraph-aware chunking + cosine-similarity search over scan documents.

Features:
    - Chunking on paragraph, then sentence boundaries (hard split as last resort)
    - Embedding generation (via LLM Gateway)
    - Chunk persistence in document_chunks, replaced on re-ingest
    - Semantic search scoped to a scan, optionally to one document

Usage:
    from app.ai.rag import DocumentIndex
    index = DocumentIndex(gateway)
    index.index_document(document, text)
    hits = index.search(scan_id, "headcount by department", top_k=5)
"""

import json
import logging
import math
import re

from sqlalchemy import delete, select

from app.models import db
from app.models.scan import DocumentChunk

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 8000
DEFAULT_TOP_K = 5

_SENTENCE_END = re.compile(r"(?<=[.!?])\s+")


# ── Chunking ──────────────────────────────────────────────────────────────────

def chunk_text(text: str, max_chars: int = DEFAULT_CHUNK_SIZE) -> list[str]:
    """
    Split text into chunks of at most ``max_chars`` characters.

    Paragraphs (``\\n\\n``) are packed together while they fit. A paragraph
    longer than the limit is packed sentence by sentence, and a sentence
    longer than the limit is hard-split.
    """
    if not text or not text.strip():
        return []

    chunks: list[str] = []
    current = ""

    def flush():
        nonlocal current
        if current.strip():
            chunks.append(current.strip())
        current = ""

    def add(piece: str, joiner: str):
        nonlocal current
        if not current:
            current = piece
        elif len(current) + len(joiner) + len(piece) <= max_chars:
            current = f"{current}{joiner}{piece}"
        else:
            flush()
            current = piece

    for paragraph in text.split("\n\n"):
        paragraph = paragraph.strip()
        if not paragraph:
            continue
        if len(paragraph) <= max_chars:
            add(paragraph, "\n\n")
            continue

        flush()
        for sentence in _SENTENCE_END.split(paragraph):
            if len(sentence) <= max_chars:
                add(sentence, " ")
                continue
            flush()
            for start in range(0, len(sentence), max_chars):
                chunks.append(sentence[start:start + max_chars])
        flush()

    flush()
    return chunks


def _cosine_similarity(vec_a: list[float], vec_b: list[float]) -> float:
    """Compute cosine similarity between two vectors."""
    if not vec_a or len(vec_a) != len(vec_b):
        return 0.0

    dot = sum(a * b for a, b in zip(vec_a, vec_b))
    norm_a = math.sqrt(sum(a * a for a in vec_a))
    norm_b = math.sqrt(sum(b * b for b in vec_b))

    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (norm_a * norm_b)


# ── Index ─────────────────────────────────────────────────────────────────────

class DocumentIndex:
    """Embeds document chunks and ranks them against a query."""

    def __init__(self, gateway, chunk_size: int = DEFAULT_CHUNK_SIZE):
        self.gateway = gateway
        self.chunk_size = chunk_size

    def index_document(self, document, text: str) -> int:
        """
        Replace the stored chunks of ``document`` with fresh ones built from ``text``.

        Returns:
            Number of chunks written.
        """
        self.delete_document(document.id)

        chunks = chunk_text(text, self.chunk_size)
        if not chunks:
            return 0

        vectors = self.gateway.embed(chunks, purpose="embedding", scan_id=document.scan_id)
        for i, chunk in enumerate(chunks):
            vec = vectors[i] if i < len(vectors) else []
            db.session.add(DocumentChunk(
                tenant_id=document.tenant_id,
                workspace_id=document.workspace_id,
                scan_id=document.scan_id,
                document_id=document.id,
                chunk_index=i,
                text=chunk,
                embedding_json=json.dumps(vec) if vec else None,
            ))
        db.session.flush()

        logger.info(
            "Indexed document %s: %d chunks", document.id, len(chunks),
            extra={"scan_id": document.scan_id},
        )
        return len(chunks)

    @staticmethod
    def delete_document(document_id: str) -> int:
        result = db.session.execute(
            delete(DocumentChunk).where(DocumentChunk.document_id == document_id)
        )
        return result.rowcount or 0

    def search(
        self,
        scan_id: str,
        query: str,
        *,
        top_k: int = DEFAULT_TOP_K,
        document_id: str | None = None,
    ) -> list[dict]:
        """
        Rank a scan's chunks by cosine similarity to ``query``.

        Returns:
            [{text, score, document_id, chunk_index}] best first, at most ``top_k``.
        """
        query_vec = self.gateway.embed_one(query, purpose="embedding", scan_id=scan_id)
        if not query_vec:
            return []

        stmt = select(DocumentChunk).where(DocumentChunk.scan_id == scan_id)
        if document_id:
            stmt = stmt.where(DocumentChunk.document_id == document_id)
        candidates = db.session.execute(stmt).scalars().all()

        scored = []
        for chunk in candidates:
            score = _cosine_similarity(query_vec, chunk.embedding)
            scored.append({
                "text": chunk.text,
                "score": round(score, 6),
                "document_id": chunk.document_id,
                "chunk_index": chunk.chunk_index,
            })

        scored.sort(key=lambda r: (-r["score"], r["chunk_index"]))
        return scored[:top_k]
