"""
Document Service.

Documents reach the platform as already-extracted text. Ingesting one
replaces its retrieval chunks, summarises it with the document's own prompt
and, for HRIS Reports in CSV form, parses the employee list.

Functions:
    - list_documents:                Documents of a scan, optional type filter
    - get_document:                  Single document (scan-scoped)
    - ingest_document:               Store text, index chunks, summarise
    - reset_document:                Back to placeholder, chunks removed
    - update_summary:                Manually edited summary
    - update_summarization_prompt:   Store prompt and re-summarise from top chunks
    - chat_with_documents:           Q&A over the scan's document chunks
    - brief_from_chunks:             Short summary of a document from its best chunks
    - parse_employees_csv:           HRIS CSV → [{id, name, role, department}]
"""

import csv
import io
import logging

from flask import current_app
from sqlalchemy import select

from app.ai import get_document_index, get_gateway, get_prompt_registry
from app.ai.assistants import DataRoomAssistant
from app.core.exceptions import NotFoundError, ValidationError
from app.models import db
from app.models.scan import PLACEHOLDER_SUMMARIZATION, CompanyInfo, Document
from app.services.document_catalog import (
    DOCUMENT_AGENT_ROLES,
    DOCUMENT_DESCRIPTIONS,
    HRIS_REPORTS,
    default_prompt,
)
from app.services.helpers.scoped_queries import get_scoped, resolve_scan
from app.utils.helpers import text_value

logger = logging.getLogger(__name__)

CSV_CONTENT_TYPES = {"text/csv", "application/csv"}

_EMPLOYEE_COLUMNS = {
    "id": ("id", "employee id", "employee_id", "employee number", "emp id"),
    "name": ("name", "full name", "full_name", "employee name", "employee"),
    "role": ("role", "title", "job title", "job_title", "position"),
    "department": ("department", "dept", "division", "team"),
}


def _assistant() -> DataRoomAssistant:
    return DataRoomAssistant(
        gateway=get_gateway(),
        prompt_registry=get_prompt_registry(),
        index=get_document_index(),
    )


def _top_k() -> int:
    return current_app.config.get("DOCUMENT_SEARCH_TOP_K", 5)


def company_for_scan(scan_id: str) -> dict | None:
    company = db.session.execute(
        select(CompanyInfo).where(CompanyInfo.scan_id == scan_id)
    ).scalar_one_or_none()
    return company.to_dict() if company else None


def _find_document(scan, data: dict) -> Document:
    """Resolve ``document_id`` or ``document_type`` within a scan. 404 when neither matches."""
    document_id = text_value(data, "document_id")
    document_type = text_value(data, "document_type")
    if document_id:
        return get_scoped(Document, document_id, scan_id=scan.id)
    if not document_type:
        raise ValidationError("document_id or document_type is required", details={"document_type": "required"})
    document = _document_by_type(scan.id, document_type)
    if document is None:
        raise NotFoundError(resource="Document", resource_id=document_type)
    return document


def _document_by_type(scan_id: str, document_type: str) -> Document | None:
    return db.session.execute(
        select(Document)
        .where(Document.scan_id == scan_id, Document.document_type == document_type)
        .order_by(Document.created_at)
    ).scalars().first()


# ── HRIS employees ───────────────────────────────────────────────────────────

def parse_employees_csv(content: str) -> list[dict]:
    """
    Parse an HRIS CSV export into employee dicts.

    Header matching is case-insensitive; rows without a name are skipped.
    A ``first name`` / ``last name`` pair is joined when there is no name column.
    """
    reader = csv.DictReader(io.StringIO(content))
    if not reader.fieldnames:
        return []

    headers = {(h or "").strip().lower(): h for h in reader.fieldnames}
    columns = {}
    for field, aliases in _EMPLOYEE_COLUMNS.items():
        for alias in aliases:
            if alias in headers:
                columns[field] = headers[alias]
                break

    employees = []
    for i, row in enumerate(reader, start=1):
        name = (row.get(columns["name"]) or "").strip() if "name" in columns else ""
        if not name:
            first = (row.get(headers.get("first name", "")) or "").strip()
            last = (row.get(headers.get("last name", "")) or "").strip()
            name = f"{first} {last}".strip()
        if not name:
            continue
        employees.append({
            "id": (row.get(columns["id"]) or "").strip() if "id" in columns else str(i),
            "name": name,
            "role": (row.get(columns["role"]) or "").strip() if "role" in columns else "",
            "department": (row.get(columns["department"]) or "").strip() if "department" in columns else "",
        })
    return employees


def _is_csv(content_type: str | None, file_name: str | None) -> bool:
    if content_type and content_type.split(";")[0].strip().lower() in CSV_CONTENT_TYPES:
        return True
    return bool(file_name) and file_name.lower().endswith(".csv")


# ── Queries ──────────────────────────────────────────────────────────────────

def list_documents(tenant_slug, workspace_id, scan_id, document_type=None) -> list[dict]:
    scan = resolve_scan(tenant_slug, workspace_id, scan_id)
    stmt = select(Document).where(Document.scan_id == scan.id)
    if document_type:
        stmt = stmt.where(Document.document_type == document_type)
    documents = db.session.execute(stmt.order_by(Document.created_at)).scalars().all()
    return [d.to_dict() for d in documents]


def get_document(tenant_slug, workspace_id, scan_id, document_id) -> dict:
    scan = resolve_scan(tenant_slug, workspace_id, scan_id)
    return get_scoped(Document, document_id, scan_id=scan.id).to_dict()


# ── Ingest ───────────────────────────────────────────────────────────────────

def ingest_document(tenant_slug, workspace_id, scan_id, data: dict) -> dict:
    """
    Store a document's extracted text, index it and summarise it.

    The document matching ``document_id`` (or the first of ``document_type``)
    is replaced; otherwise a new one is created. A failed summary leaves the
    document ``uploaded``.
    """
    scan = resolve_scan(tenant_slug, workspace_id, scan_id)
    content = data.get("content")
    if not isinstance(content, str) or not content.strip():
        raise ValidationError("content is required", details={"content": "required"})

    document_id = text_value(data, "document_id")
    if document_id:
        document = get_scoped(Document, document_id, scan_id=scan.id)
    else:
        document_type = text_value(data, "document_type")
        if not document_type:
            raise ValidationError(
                "document_type or document_id is required",
                details={"document_type": "required"},
            )
        document = _document_by_type(scan.id, document_type)
        if document is None:
            document = Document(
                tenant_id=scan.tenant_id,
                workspace_id=scan.workspace_id,
                scan_id=scan.id,
                document_type=document_type,
                description=DOCUMENT_DESCRIPTIONS.get(document_type, ""),
                summarization_prompt=default_prompt(document_type),
                document_agent_role=DOCUMENT_AGENT_ROLES.get(document_type, ""),
            )
            db.session.add(document)

    file_name = text_value(data, "file_name") or f"{document.document_type}.txt"
    content_type = text_value(data, "content_type") or "text/plain"

    document.file_name = file_name
    document.content_type = content_type
    document.file_size = len(content.encode("utf-8"))
    document.status = "uploaded"
    document.summary = None
    document.summarization = PLACEHOLDER_SUMMARIZATION
    if document.document_type == HRIS_REPORTS:
        document.employees = parse_employees_csv(content) if _is_csv(content_type, file_name) else []
    db.session.flush()

    chunk_count = 0
    try:
        chunk_count = get_document_index().index_document(document, content)
    except Exception as exc:
        logger.error(
            "Document indexing failed: %s", exc,
            extra={"scan_id": scan.id, "document_id": document.id},
        )

    result = _assistant().summarize_document(
        document_type=document.document_type,
        file_name=file_name,
        content=content,
        instructions=document.summarization_prompt or default_prompt(document.document_type),
        agent_role=document.document_agent_role,
        company=company_for_scan(scan.id),
        scan_id=scan.id,
    )
    if result["error"]:
        logger.warning(
            "Document summary failed, keeping status uploaded: %s", result["error"],
            extra={"scan_id": scan.id, "document_id": document.id},
        )
    else:
        document.summary = result["summary"]
        document.summarization = result["summary"]
        document.status = "processed"
    db.session.commit()

    logger.info(
        "Document ingested",
        extra={
            "scan_id": scan.id,
            "document_id": document.id,
            "document_type": document.document_type,
            "chunks": chunk_count,
            "status": document.status,
        },
    )
    response = document.to_dict()
    response["chunks"] = chunk_count
    return response


def reset_document(tenant_slug, workspace_id, scan_id, document_id) -> dict:
    """Drop a document's content and chunks, returning it to a placeholder."""
    scan = resolve_scan(tenant_slug, workspace_id, scan_id)
    document = get_scoped(Document, document_id, scan_id=scan.id)

    removed = get_document_index().delete_document(document.id)
    document.status = "placeholder"
    document.file_name = None
    document.content_type = None
    document.file_size = None
    document.summary = None
    document.summarization = PLACEHOLDER_SUMMARIZATION
    if document.document_type == HRIS_REPORTS:
        document.employees = []
    db.session.commit()

    logger.info(
        "Document reset to placeholder",
        extra={"scan_id": scan.id, "document_id": document.id, "chunks": removed},
    )
    return document.to_dict()


def update_summary(tenant_slug, workspace_id, scan_id, document_id, data: dict) -> dict:
    scan = resolve_scan(tenant_slug, workspace_id, scan_id)
    document = get_scoped(Document, document_id, scan_id=scan.id)
    summary = data.get("summary")
    if not isinstance(summary, str):
        raise ValidationError("summary must be a string", details={"summary": "string required"})

    document.summary = summary
    document.summarization = summary or PLACEHOLDER_SUMMARIZATION
    db.session.commit()

    logger.info("Document summary updated", extra={"scan_id": scan.id, "document_id": document.id})
    return document.to_dict()


# ── Summaries from chunks ────────────────────────────────────────────────────

def _ranking_query(document: Document) -> str:
    return f"Document type: {document.document_type}. Document name: {document.file_name or 'Untitled'}"


def _top_sections(document: Document) -> list[str]:
    hits = get_document_index().search(
        document.scan_id, _ranking_query(document), top_k=_top_k(), document_id=document.id,
    )
    return [hit["text"] for hit in hits]


def update_summarization_prompt(tenant_slug, workspace_id, scan_id, data: dict) -> dict:
    """
    Store a new summarisation prompt and re-summarise when the document has content.

    Only the best-ranked chunks feed the new summary.
    """
    scan = resolve_scan(tenant_slug, workspace_id, scan_id)
    prompt = data.get("prompt")
    if not isinstance(prompt, str) or not prompt.strip():
        raise ValidationError("prompt is required", details={"prompt": "required"})

    document = _find_document(scan, data)
    document.summarization_prompt = prompt.strip()

    resummarized = False
    if document.has_content:
        sections = _top_sections(document)
        if sections:
            result = _assistant().summarize_document(
                document_type=document.document_type,
                file_name=document.file_name,
                content="\n\n".join(sections),
                instructions=document.summarization_prompt,
                agent_role=document.document_agent_role,
                company=company_for_scan(scan.id),
                scan_id=scan.id,
            )
            if result["error"]:
                logger.warning(
                    "Re-summarisation failed: %s", result["error"],
                    extra={"scan_id": scan.id, "document_id": document.id},
                )
            else:
                document.summary = result["summary"]
                document.summarization = result["summary"]
                document.status = "processed"
                resummarized = True
    db.session.commit()

    logger.info(
        "Summarization prompt updated",
        extra={"scan_id": scan.id, "document_id": document.id, "resummarized": resummarized},
    )
    response = document.to_dict()
    response["resummarized"] = resummarized
    return response


def brief_from_chunks(document: Document) -> str | None:
    """300-500 word summary of a document built from its top-ranked chunks."""
    sections = _top_sections(document)
    if not sections:
        return None
    result = _assistant().brief_document(
        document_type=document.document_type,
        file_name=document.file_name,
        sections=sections,
        scan_id=document.scan_id,
    )
    if result["error"]:
        logger.warning(
            "Document brief failed: %s", result["error"],
            extra={"scan_id": document.scan_id, "document_id": document.id},
        )
        return None
    return result["summary"]


# ── Chat ─────────────────────────────────────────────────────────────────────

def chat_with_documents(tenant_slug, workspace_id, scan_id, data: dict) -> dict:
    scan = resolve_scan(tenant_slug, workspace_id, scan_id)
    query = data.get("query")
    if not isinstance(query, str) or not query.strip():
        raise ValidationError("query is required", details={"query": "required"})

    company = data.get("company_info")
    if not isinstance(company, dict):
        company = company_for_scan(scan.id)
    history = data.get("conversation_history")
    status = data.get("document_status")

    result = _assistant().chat(
        scan_id=scan.id,
        query=query.strip(),
        conversation_history=history if isinstance(history, list) else None,
        document_status=status if isinstance(status, str) and status.strip() else None,
        company=company,
        top_k=_top_k(),
    )
    db.session.commit()

    logger.info(
        "Document chat answered",
        extra={"scan_id": scan.id, "results": len(result["results"])},
    )
    return {"message": result["message"], "results": result["results"], "query": result["query"]}
