"""
Pain Point Service.

Pain points are extracted from interview transcripts of a lifecycle, merged
with what consultants already edited, and rolled up into process group
scores.

Functions:
    - latest_summary:              Most recently updated PainPointSummary of a lifecycle
    - get_summary:                 Latest summary (404 when none)
    - save_summary:                Upsert pain points / overall summary / markdown summary
    - delete_summary:              Delete every summary of a lifecycle
    - sync_scores:                 Pain point scores → process group / category scores
    - extract_pain_points:         LLM extraction merged into the existing summary
    - create_transcription:        Store a transcript and re-run extraction
    - get_transcription:           Single transcript (scan-scoped)
    - get_latest_transcription:    Newest transcript of a lifecycle
    - delete_transcription:        Delete and re-run extraction on what remains
    - list_scan_transcriptions:    Every transcript of a scan with lifecycle names
    - interview_chat:              Ora interview assistant
"""

import copy
import logging
from datetime import datetime, timezone

from sqlalchemy import delete, select

from app.ai import get_document_index, get_gateway, get_prompt_registry
from app.ai.assistants import InterviewCopilot, PainPointAnalyst
from app.core.exceptions import AIResponseError, NotFoundError, ValidationError
from app.models import db
from app.models.lifecycle import DEFAULT_JOURNEY_REF, Lifecycle, PainPointSummary, Transcription
from app.models.scan import CompanyInfo
from app.services import scoring
from app.services.helpers.scoped_queries import get_scoped, resolve_lifecycle, resolve_scan
from app.utils.helpers import objective_key, text_value

logger = logging.getLogger(__name__)

TRANSCRIPT_SEPARATOR = "\n\n---\n\n"


def _analyst() -> PainPointAnalyst:
    return PainPointAnalyst(
        gateway=get_gateway(),
        prompt_registry=get_prompt_registry(),
        index=get_document_index(),
    )


def _company(scan_id: str) -> CompanyInfo | None:
    return db.session.execute(
        select(CompanyInfo).where(CompanyInfo.scan_id == scan_id)
    ).scalar_one_or_none()


# ── Summaries ────────────────────────────────────────────────────────────────

def latest_summary(lifecycle_id: str) -> PainPointSummary | None:
    return db.session.execute(
        select(PainPointSummary)
        .where(PainPointSummary.lifecycle_id == lifecycle_id)
        .order_by(PainPointSummary.updated_at.desc(), PainPointSummary.created_at.desc())
    ).scalars().first()


def _upsert_summary(lifecycle: Lifecycle, pain_points: list, overall_summary=None, summary=None) -> PainPointSummary:
    record = latest_summary(lifecycle.id)
    if record is None:
        record = PainPointSummary(
            tenant_id=lifecycle.tenant_id,
            workspace_id=lifecycle.workspace_id,
            scan_id=lifecycle.scan_id,
            lifecycle_id=lifecycle.id,
            overall_summary="",
            summary="",
        )
        db.session.add(record)
    record.pain_points = pain_points
    if overall_summary:
        record.overall_summary = overall_summary
    if summary:
        record.summary = summary
    return record


def get_summary(tenant_slug, workspace_id, scan_id, lifecycle_id) -> dict:
    lifecycle = resolve_lifecycle(tenant_slug, workspace_id, scan_id, lifecycle_id)
    record = latest_summary(lifecycle.id)
    if record is None:
        raise NotFoundError(resource="PainPointSummary", resource_id=lifecycle.id)
    return record.to_dict()


def _check_pain_points(pain_points: list) -> None:
    """Every item is an object; ``id`` and ``assigned_process_group`` are strings when set."""
    for position, item in enumerate(pain_points):
        if not isinstance(item, dict):
            raise ValidationError(
                f"pain_points[{position}] must be an object",
                details={"pain_points": position},
            )
        for key in ("id", "assigned_process_group"):
            value = item.get(key)
            if value is not None and not isinstance(value, str):
                raise ValidationError(
                    f"pain_points[{position}].{key} must be a string",
                    details={"pain_points": position, key: "invalid"},
                )


def save_summary(tenant_slug, workspace_id, scan_id, lifecycle_id, data: dict) -> dict:
    """Upsert the lifecycle's summary. ``painPoints`` is accepted for ``pain_points``."""
    lifecycle = resolve_lifecycle(tenant_slug, workspace_id, scan_id, lifecycle_id)
    pain_points = data.get("pain_points", data.get("painPoints"))
    if not isinstance(pain_points, list):
        raise ValidationError("pain_points must be a list", details={"pain_points": "list required"})
    _check_pain_points(pain_points)

    record = _upsert_summary(
        lifecycle,
        copy.deepcopy(pain_points),
        overall_summary=text_value(data, "overallSummary"),
        summary=text_value(data, "summary"),
    )
    db.session.commit()

    logger.info(
        "Pain point summary saved",
        extra={"scan_id": lifecycle.scan_id, "lifecycle_id": lifecycle.id, "count": len(pain_points)},
    )
    return record.to_dict()


def delete_summary(tenant_slug, workspace_id, scan_id, lifecycle_id) -> dict:
    lifecycle = resolve_lifecycle(tenant_slug, workspace_id, scan_id, lifecycle_id)
    result = db.session.execute(
        delete(PainPointSummary).where(PainPointSummary.lifecycle_id == lifecycle.id)
    )
    db.session.commit()

    deleted = result.rowcount or 0
    logger.info(
        "Pain point summaries deleted",
        extra={"scan_id": lifecycle.scan_id, "lifecycle_id": lifecycle.id, "count": deleted},
    )
    return {"deleted": deleted}


# ── Scores ───────────────────────────────────────────────────────────────────

def _sync(lifecycle: Lifecycle) -> list[str]:
    record = latest_summary(lifecycle.id)
    pain_points = record.pain_points if record else []
    tree = copy.deepcopy(lifecycle.processes) if lifecycle.processes else {"process_categories": []}

    updated_groups, changed = scoring.sync_group_scores(tree, pain_points)
    if changed:
        lifecycle.processes = tree
        db.session.commit()
        logger.info(
            "Process group scores synced",
            extra={"scan_id": lifecycle.scan_id, "lifecycle_id": lifecycle.id, "groups": len(updated_groups)},
        )
    return updated_groups


def sync_scores(tenant_slug, workspace_id, scan_id, lifecycle_id) -> dict:
    lifecycle = resolve_lifecycle(tenant_slug, workspace_id, scan_id, lifecycle_id)
    updated_groups = _sync(lifecycle)
    return {"updated_groups": updated_groups, "lifecycle": lifecycle.to_dict()}


# ── Extraction ───────────────────────────────────────────────────────────────

def _objectives(scan_id: str) -> list[dict]:
    company = _company(scan_id)
    objectives = []
    for objective in (company.strategic_objectives if company else None) or []:
        if isinstance(objective, dict) and objective.get("name"):
            objectives.append({
                "key": objective_key(objective["name"]),
                "name": objective["name"],
                "description": objective.get("description") or "",
            })
    return objectives


def _extract(lifecycle: Lifecycle, text: str) -> dict:
    """
    Run extraction on ``text`` and merge the result into the lifecycle's summary.

    Returns:
        dict with keys: pain_points, overallSummary, summary, extracted,
        updated_groups, error
    """
    record = latest_summary(lifecycle.id)
    existing = list(record.pain_points or []) if record else []
    groups = [g["name"] for g in scoring.list_process_groups(lifecycle.processes)]

    result = _analyst().extract(
        text,
        lifecycle_name=lifecycle.name,
        process_groups=groups,
        objectives=_objectives(lifecycle.scan_id),
        existing_pain_points=existing,
        scan_id=lifecycle.scan_id,
    )

    if not result["extracted"]:
        # Usage rows written by a failed call still need a commit
        db.session.commit()
        if result["error"]:
            logger.warning(
                "Pain point extraction failed, keeping existing summary: %s", result["error"],
                extra={"scan_id": lifecycle.scan_id, "lifecycle_id": lifecycle.id},
            )
        return {
            "pain_points": existing,
            "overallSummary": record.overall_summary if record else "",
            "summary": result["summary"],
            "extracted": False,
            "updated_groups": [],
            "error": result["error"],
        }

    merged = scoring.merge_pain_points(existing, result["pain_points"], set(groups))
    saved = _upsert_summary(
        lifecycle, merged,
        overall_summary=result["overallSummary"],
        summary=result["summary"],
    )
    db.session.commit()

    updated_groups = _sync(lifecycle)
    logger.info(
        "Pain points extracted",
        extra={
            "scan_id": lifecycle.scan_id,
            "lifecycle_id": lifecycle.id,
            "extracted": len(result["pain_points"]),
            "total": len(merged),
        },
    )
    return {
        "pain_points": saved.pain_points,
        "overallSummary": saved.overall_summary or "",
        "summary": saved.summary or "",
        "extracted": True,
        "updated_groups": updated_groups,
        "error": None,
    }


def extract_pain_points(tenant_slug, workspace_id, scan_id, lifecycle_id, data: dict) -> dict:
    lifecycle = resolve_lifecycle(tenant_slug, workspace_id, scan_id, lifecycle_id)
    text = data.get("text")
    if text is None:
        text = data.get("transcription")
    if not isinstance(text, str):
        raise ValidationError("text must be a string", details={"text": "string required"})
    return _extract(lifecycle, text)


def _resummarise(lifecycle: Lifecycle) -> dict | None:
    transcripts = db.session.execute(
        select(Transcription.transcription)
        .where(Transcription.lifecycle_id == lifecycle.id)
        .order_by(Transcription.created_at)
    ).scalars().all()
    if not transcripts:
        return None
    return _extract(lifecycle, TRANSCRIPT_SEPARATOR.join(transcripts))


# ── Transcriptions ───────────────────────────────────────────────────────────

def create_transcription(tenant_slug, workspace_id, scan_id, lifecycle_id, data: dict) -> dict:
    """
    Store a transcript and re-run extraction over all of the lifecycle's transcripts.

    The same text posted twice for one lifecycle returns the existing record
    with ``duplicate=True``.
    """
    lifecycle = resolve_lifecycle(tenant_slug, workspace_id, scan_id, lifecycle_id)
    text = data.get("transcription")
    if not isinstance(text, str) or not text.strip():
        raise ValidationError("transcription is required", details={"transcription": "required"})

    existing = db.session.execute(
        select(Transcription).where(
            Transcription.lifecycle_id == lifecycle.id,
            Transcription.transcription == text,
        )
    ).scalars().first()
    if existing is not None:
        logger.info(
            "Duplicate transcription ignored",
            extra={"scan_id": lifecycle.scan_id, "lifecycle_id": lifecycle.id},
        )
        return {"id": existing.id, "duplicate": True, "transcription": existing.to_dict(), "analysis": None}

    stamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")
    transcription = Transcription(
        tenant_id=lifecycle.tenant_id,
        workspace_id=lifecycle.workspace_id,
        scan_id=lifecycle.scan_id,
        lifecycle_id=lifecycle.id,
        transcription=text,
        transcript_name=text_value(data, "transcript_name") or f"Interview - {stamp}",
        journey_ref=text_value(data, "journey_ref") or DEFAULT_JOURNEY_REF,
    )
    db.session.add(transcription)
    db.session.commit()

    logger.info(
        "Transcription created",
        extra={"scan_id": lifecycle.scan_id, "lifecycle_id": lifecycle.id, "transcription_id": transcription.id},
    )
    analysis = _resummarise(lifecycle)
    return {
        "id": transcription.id,
        "duplicate": False,
        "transcription": transcription.to_dict(),
        "analysis": analysis,
    }


def get_transcription(tenant_slug, workspace_id, scan_id, transcription_id) -> dict:
    scan = resolve_scan(tenant_slug, workspace_id, scan_id)
    return get_scoped(Transcription, transcription_id, scan_id=scan.id).to_dict()


def get_latest_transcription(tenant_slug, workspace_id, scan_id, lifecycle_id) -> dict:
    lifecycle = resolve_lifecycle(tenant_slug, workspace_id, scan_id, lifecycle_id)
    transcription = db.session.execute(
        select(Transcription)
        .where(Transcription.lifecycle_id == lifecycle.id)
        .order_by(Transcription.created_at.desc())
    ).scalars().first()
    if transcription is None:
        raise NotFoundError(resource="Transcription", resource_id=lifecycle.id)
    return transcription.to_dict()


def delete_transcription(tenant_slug, workspace_id, scan_id, transcription_id) -> dict:
    """Delete a transcript, then re-run extraction on the lifecycle's remaining transcripts."""
    scan = resolve_scan(tenant_slug, workspace_id, scan_id)
    transcription = get_scoped(Transcription, transcription_id, scan_id=scan.id)
    lifecycle = db.session.get(Lifecycle, transcription.lifecycle_id)

    db.session.delete(transcription)
    db.session.commit()
    logger.info(
        "Transcription deleted",
        extra={"scan_id": scan.id, "transcription_id": transcription_id},
    )

    analysis = _resummarise(lifecycle) if lifecycle is not None else None
    return {"deleted": transcription_id, "analysis": analysis}


def list_scan_transcriptions(tenant_slug, workspace_id, scan_id) -> list[dict]:
    scan = resolve_scan(tenant_slug, workspace_id, scan_id)
    transcriptions = db.session.execute(
        select(Transcription)
        .where(Transcription.scan_id == scan.id)
        .order_by(Transcription.created_at.desc())
    ).scalars().all()
    names = dict(db.session.execute(
        select(Lifecycle.id, Lifecycle.name).where(Lifecycle.scan_id == scan.id)
    ).all())

    rows = []
    for transcription in transcriptions:
        row = transcription.to_dict()
        row["lifecycle_name"] = names.get(transcription.lifecycle_id) or "Unknown Lifecycle"
        row["transcript_name"] = transcription.transcript_name or "Unnamed Transcript"
        row["journey_ref"] = transcription.journey_ref or "N/A"
        rows.append(row)
    return rows


# ── Interview chat ───────────────────────────────────────────────────────────

def interview_chat(tenant_slug, workspace_id, scan_id, lifecycle_id, data: dict) -> dict:
    lifecycle = resolve_lifecycle(tenant_slug, workspace_id, scan_id, lifecycle_id)
    query = data.get("query")
    if not isinstance(query, str) or not query.strip():
        raise ValidationError("query is required", details={"query": "required"})

    company = _company(lifecycle.scan_id)
    history = data.get("conversation_history")
    modes = data.get("active_modes")
    context = data.get("lifecycle_context")

    result = InterviewCopilot(
        gateway=get_gateway(),
        prompt_registry=get_prompt_registry(),
    ).chat(
        query=query.strip(),
        lifecycle=lifecycle.to_dict(),
        company=company.to_dict() if company else None,
        conversation_history=history if isinstance(history, list) else None,
        lifecycle_context=context if isinstance(context, str) else "",
        active_modes=modes if isinstance(modes, dict) else None,
        scan_id=lifecycle.scan_id,
    )
    db.session.commit()
    if result["error"]:
        raise AIResponseError(result["error"])

    logger.info("Interview chat answered", extra={"scan_id": lifecycle.scan_id, "lifecycle_id": lifecycle.id})
    return {"message": result["message"], "query": result["query"]}
