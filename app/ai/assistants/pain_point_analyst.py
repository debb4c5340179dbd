"""
Process Scan Platform
Pain Point Analyst.

Turns accumulated interview transcripts for one lifecycle into:
    - structured pain points (assigned to a process group, scored per objective)
    - a one-paragraph overall summary
    - a markdown interview summary

Short or single-speaker transcripts are not sent to the LLM; a fixed
placeholder summary is returned instead.
"""

import json
import logging

from app.ai.assistants.base import BaseAssistant

logger = logging.getLogger(__name__)

MIN_TRANSCRIPT_CHARS = 10
MIN_SPEAKER_TURNS = 2

WAITING_SUMMARY = (
    "## Waiting for Conversation\n\n"
    "Not enough conversation to summarize yet. As participants speak, key points will be "
    "summarized here automatically."
)
INITIAL_SUMMARY = (
    "## Initial Conversation\n\n"
    "The conversation is just starting. More detailed summary will appear as the discussion "
    "progresses."
)
FAILED_SUMMARY = (
    "## Summary\n\nUnable to generate a detailed summary at this time. Please try again later."
)


def count_speaker_turns(text: str) -> int:
    return sum(1 for line in text.split("\n") if ":" in line)


def ensure_markdown_heading(summary: str) -> str:
    if "#" not in summary:
        return f"## Summary\n\n{summary}"
    return summary


class PainPointAnalyst(BaseAssistant):
    """Pain point extraction from interview transcripts."""

    def extract(
        self,
        transcript: str,
        *,
        lifecycle_name: str,
        process_groups: list[str],
        objectives: list[dict],
        existing_pain_points: list[dict] | None = None,
        scan_id: str | None = None,
    ) -> dict:
        """
        Args:
            objectives: [{key, name, description}] where key is the ``so_*`` field.

        Returns:
            dict with keys: pain_points, overallSummary, summary, extracted, error
        """
        result = {
            "pain_points": [],
            "overallSummary": "",
            "summary": "",
            "extracted": False,
            "error": None,
        }

        text = transcript or ""
        if len(text.strip()) < MIN_TRANSCRIPT_CHARS:
            result["summary"] = WAITING_SUMMARY
            return result
        if count_speaker_turns(text) < MIN_SPEAKER_TURNS:
            result["summary"] = INITIAL_SUMMARY
            return result

        objective_lines = "\n".join(
            f"- {o['key']}: {o.get('name', '')} ({o.get('description') or 'no description'})"
            for o in objectives
        ) or "- none defined"
        existing = [
            {"id": p.get("id"), "name": p.get("name")}
            for p in (existing_pain_points or [])
            if isinstance(p, dict)
        ]

        messages = self.prompt_registry.render(
            "pain_point_extraction",
            lifecycle_name=lifecycle_name,
            process_groups="\n".join(f"- {name}" for name in process_groups) or "- none defined",
            objectives=objective_lines,
            existing_pain_points=json.dumps(existing) if existing else "none",
            transcript=text,
        )
        try:
            content = self._chat(messages, purpose="pain_point_extraction", scan_id=scan_id)
        except Exception as exc:
            logger.error("Pain point extraction failed: %s", exc, extra={"scan_id": scan_id})
            result["summary"] = FAILED_SUMMARY
            result["error"] = f"AI analysis failed: {exc}"
            return result

        parsed = self._parse_response(content)
        items = parsed.get("pain_points")
        if not isinstance(items, list):
            result["summary"] = FAILED_SUMMARY
            result["error"] = "Could not parse pain points from AI response"
            return result

        result["pain_points"] = [p for p in items if isinstance(p, dict) and p.get("name")]
        result["overallSummary"] = str(parsed.get("overallSummary") or "")
        summary = str(parsed.get("summary") or "").strip()
        result["summary"] = ensure_markdown_heading(summary) if summary else FAILED_SUMMARY
        result["extracted"] = True
        return result
