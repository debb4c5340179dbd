"""
Process Scan Platform
Scan domain models.

Models:
    - Scan: one engagement inside a workspace
    - Document: uploaded (or placeholder) source document of a scan
    - DocumentChunk: embedded text chunk used for retrieval
    - CompanyInfo: company profile + strategic objectives (one per scan)
    - ScenarioPlanning: scenario planning worksheet (one per scan)
"""

import json

from app.models import db
from app.models.base import ScanScopedModel, TenantModel

SCAN_STATUSES = {"pending", "in_progress", "completed", "archived"}
OBJECTIVE_STATUSES = {"to be approved", "approved"}

PLACEHOLDER_SUMMARIZATION = "No summary available yet. Upload a document to generate a summary."
DEFAULT_RESEARCH = "Ora has done no company research yet."


# ── Scan ─────────────────────────────────────────────────────────────────────

class Scan(TenantModel):
    __tablename__ = "scans"

    workspace_id = db.Column(
        db.String(36), db.ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, default="")
    status = db.Column(db.String(30), default="pending")
    website = db.Column(db.String(500), default="")
    country = db.Column(db.String(100), default="")
    industry = db.Column(db.String(200), default="")

    def to_dict(self):
        data = self._base_dict()
        data.update({
            "workspace_id": self.workspace_id,
            "tenant_slug": self.workspace.tenant.slug if self.workspace else None,
            "name": self.name,
            "description": self.description or "",
            "status": self.status,
            "website": self.website or "",
            "country": self.country or "",
            "industry": self.industry or "",
        })
        return data


# ── Documents ────────────────────────────────────────────────────────────────

class Document(ScanScopedModel):
    __tablename__ = "documents"

    document_type = db.Column(db.String(100), nullable=False, index=True)
    description = db.Column(db.Text, default="")
    status = db.Column(db.String(20), nullable=False, default="placeholder",
                       comment="placeholder | uploaded | processed | failed")

    # File metadata (text already extracted by the caller)
    file_name = db.Column(db.String(300), nullable=True)
    content_type = db.Column(db.String(100), nullable=True)
    file_size = db.Column(db.Integer, nullable=True)

    summarization_prompt = db.Column(db.Text, default="")
    document_agent_role = db.Column(db.Text, default="")
    summary = db.Column(db.Text, nullable=True)
    summarization = db.Column(db.Text, default=PLACEHOLDER_SUMMARIZATION)

    employees = db.Column(db.JSON, default=list, comment="HRIS Reports only")

    @property
    def has_content(self) -> bool:
        return self.status in ("uploaded", "processed")

    def to_dict(self):
        data = self._base_dict()
        data.update({
            "document_type": self.document_type,
            "description": self.description or "",
            "status": self.status,
            "file_name": self.file_name,
            "content_type": self.content_type,
            "file_size": self.file_size,
            "summarization_prompt": self.summarization_prompt or "",
            "document_agent_role": self.document_agent_role or "",
            "summary": self.summary,
            "summarization": self.summarization,
            "employees": self.employees or [],
        })
        return data


class DocumentChunk(ScanScopedModel):
    """
    Embedded chunk of a document's text.

    Embeddings are stored as JSON text and ranked in Python, mirroring the
    SQLite-safe storage of the retrieval index.
    """

    __tablename__ = "document_chunks"

    document_id = db.Column(
        db.String(36), db.ForeignKey("documents.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    chunk_index = db.Column(db.Integer, nullable=False, default=0)
    text = db.Column(db.Text, nullable=False)
    embedding_json = db.Column(db.Text, nullable=True)

    @property
    def embedding(self) -> list[float]:
        if not self.embedding_json:
            return []
        try:
            return json.loads(self.embedding_json)
        except (TypeError, ValueError):
            return []

    def to_dict(self):
        data = self._base_dict()
        data.update({
            "document_id": self.document_id,
            "chunk_index": self.chunk_index,
            "text": self.text,
        })
        return data


# ── Company information ──────────────────────────────────────────────────────

class CompanyInfo(ScanScopedModel):
    __tablename__ = "company_info"
    __table_args__ = (
        db.UniqueConstraint("scan_id", name="uq_company_info_scan"),
    )

    name = db.Column(db.String(200), nullable=False)
    website = db.Column(db.String(500), default="")
    country = db.Column(db.String(100), default="")
    industry = db.Column(db.String(200), default="")
    description = db.Column(db.Text, default="")
    research = db.Column(db.Text, default=DEFAULT_RESEARCH)
    strategic_objectives = db.Column(db.JSON, default=list,
                                     comment="[{name, description, status, scoring_criteria?}]")

    def to_dict(self):
        data = self._base_dict()
        data.update({
            "name": self.name,
            "website": self.website or "",
            "country": self.country or "",
            "industry": self.industry or "",
            "description": self.description or "",
            "research": self.research or "",
            "strategic_objectives": self.strategic_objectives or [],
        })
        return data


# ── Scenario planning ────────────────────────────────────────────────────────

class ScenarioPlanning(ScanScopedModel):
    __tablename__ = "scenario_planning"
    __table_args__ = (
        db.UniqueConstraint("scan_id", name="uq_scenario_planning_scan"),
    )

    scenarios = db.Column(db.JSON, default=list)
    notes = db.Column(db.Text, default="")

    def to_dict(self):
        data = self._base_dict()
        data.update({
            "scenarios": self.scenarios or [],
            "notes": self.notes or "",
        })
        return data
