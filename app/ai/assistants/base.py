"""
Shared plumbing for the scan assistants.

Every assistant follows the same pipeline:
    1. Build context sections from scan data (company, lifecycles, documents)
    2. Render a prompt from the PromptRegistry
    3. Call the LLM Gateway with a purpose + scan_id for usage tracking
    4. Parse the JSON (or markdown) response into a result dict with an
       ``error`` key instead of raising
"""

import json
import logging
import re

from app.ai.prompt_registry import PromptRegistry

logger = logging.getLogger(__name__)

NOT_SPECIFIED = "Not specified"


class BaseAssistant:
    """Holds the gateway / prompt registry / document index trio."""

    def __init__(self, gateway=None, prompt_registry=None, index=None):
        self.gateway = gateway
        self.prompt_registry = prompt_registry or PromptRegistry()
        self.index = index

    def _chat(self, messages: list, *, purpose: str, scan_id: str | None = None, **kwargs) -> str:
        if not self.gateway:
            raise RuntimeError("LLM Gateway not available")
        response = self.gateway.chat(messages=messages, purpose=purpose, scan_id=scan_id, **kwargs)
        return response.get("content") or ""

    # ── Response parsers ──────────────────────────────────────────────────

    @staticmethod
    def _strip_fences(content: str) -> str:
        cleaned = (content or "").strip()
        if cleaned.startswith("```"):
            cleaned = re.sub(r"^```\w*\n?", "", cleaned)
            cleaned = re.sub(r"\n?```$", "", cleaned)
        return cleaned

    @classmethod
    def _parse_response(cls, content: str) -> dict:
        cleaned = cls._strip_fences(content)
        try:
            parsed = json.loads(cleaned)
            return parsed if isinstance(parsed, dict) else {}
        except json.JSONDecodeError:
            match = re.search(r"\{.*\}", cleaned, re.DOTALL)
            if match:
                try:
                    return json.loads(match.group())
                except json.JSONDecodeError:
                    return {}
        return {}

    @classmethod
    def _parse_array(cls, content: str) -> list:
        cleaned = cls._strip_fences(content)
        match = re.search(r"\[.*\]", cleaned, re.DOTALL)
        if not match:
            return []
        try:
            parsed = json.loads(match.group())
        except json.JSONDecodeError:
            return []
        return parsed if isinstance(parsed, list) else []


# ── Context sections ──────────────────────────────────────────────────────────

def company_section(company: dict | None, *, include_research: bool = False) -> str:
    """Render company info as a markdown block, or a placeholder line."""
    if not company:
        return "No company information available"
    lines = [
        "### Company Information",
        f"- **Name**: {company.get('name') or NOT_SPECIFIED}",
        f"- **Industry**: {company.get('industry') or NOT_SPECIFIED}",
        f"- **Country**: {company.get('country') or NOT_SPECIFIED}",
        f"- **Description**: {company.get('description') or NOT_SPECIFIED}",
        f"- **Website**: {company.get('website') or NOT_SPECIFIED}",
    ]
    if include_research and company.get("research"):
        lines.append(f"- **Research**: {company['research']}")
    return "\n".join(lines)


def lifecycles_section(lifecycles: list[dict]) -> str:
    if not lifecycles:
        return "No business lifecycles defined yet."
    lines = ["### Business Lifecycles"]
    for i, lc in enumerate(lifecycles, start=1):
        lines.append(f"{i}. **{lc.get('name', '')}**: {lc.get('description') or ''}")
    return "\n".join(lines)


def clean_history(history) -> list[dict]:
    """Keep only user/assistant turns with string content."""
    cleaned = []
    for msg in history or []:
        if not isinstance(msg, dict):
            continue
        if msg.get("role") in ("user", "assistant") and isinstance(msg.get("content"), str):
            cleaned.append({"role": msg["role"], "content": msg["content"]})
    return cleaned
