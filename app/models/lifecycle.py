"""
Process Scan Platform
Lifecycle domain models.

Models:
    - Lifecycle: business operating cycle with its process tree
    - PainPointSummary: extracted pain points for one lifecycle
    - Transcription: interview transcript attached to a lifecycle

The process tree is stored as JSON on the lifecycle:

    {"process_categories": [
        {"name", "description", "score",
         "process_groups": [{"name", "description", "score"}]}]}
"""

from app.models import db
from app.models.base import ScanScopedModel

UNASSIGNED_GROUP = "Unassigned"
DEFAULT_JOURNEY_REF = "not_specific"


class Lifecycle(ScanScopedModel):
    __tablename__ = "lifecycles"

    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, default="")
    position = db.Column(db.Integer, nullable=True)

    processes = db.Column(db.JSON, default=dict)
    stakeholders = db.Column(db.JSON, default=list, comment="[{id, name, role}]")

    cost_to_serve = db.Column(db.Float, nullable=True)
    industry_benchmark = db.Column(db.Float, nullable=True)

    @property
    def categories(self) -> list[dict]:
        return (self.processes or {}).get("process_categories") or []

    def to_dict(self):
        data = self._base_dict()
        data.update({
            "name": self.name,
            "description": self.description or "",
            "position": self.position,
            "processes": self.processes or {"process_categories": []},
            "stakeholders": self.stakeholders or [],
            "cost_to_serve": self.cost_to_serve,
            "industry_benchmark": self.industry_benchmark,
        })
        return data


class PainPointSummary(ScanScopedModel):
    __tablename__ = "pain_point_summaries"

    lifecycle_id = db.Column(
        db.String(36), db.ForeignKey("lifecycles.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    pain_points = db.Column(db.JSON, default=list)
    overall_summary = db.Column(db.Text, default="")
    summary = db.Column(db.Text, default="", comment="Markdown interview summary")

    def to_dict(self):
        data = self._base_dict()
        data.update({
            "lifecycle_id": self.lifecycle_id,
            "pain_points": self.pain_points or [],
            "overallSummary": self.overall_summary or "",
            "summary": self.summary or "",
        })
        return data


class Transcription(ScanScopedModel):
    __tablename__ = "transcriptions"

    lifecycle_id = db.Column(
        db.String(36), db.ForeignKey("lifecycles.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    transcription = db.Column(db.Text, nullable=False)
    transcript_name = db.Column(db.String(300), nullable=True)
    journey_ref = db.Column(db.String(200), default=DEFAULT_JOURNEY_REF)

    def to_dict(self):
        data = self._base_dict()
        data.update({
            "lifecycle_id": self.lifecycle_id,
            "transcription": self.transcription,
            "transcript_name": self.transcript_name,
            "journey_ref": self.journey_ref,
        })
        return data
