"""
Process Scan Platform
Strategy Advisor.

Capabilities:
    1. research_company           — company details → markdown profile
    2. generate_objectives        — company + lifecycles → 4-8 strategic objectives
    3. generate_scoring_criteria  — one objective → low / medium / high criteria
"""

import logging

from app.ai.assistants.base import BaseAssistant, company_section, lifecycles_section

logger = logging.getLogger(__name__)

NEW_OBJECTIVE_STATUS = "to be approved"


def dedupe_objectives(objectives: list[dict]) -> list[dict]:
    """Drop objectives whose name repeats (case-insensitive); the first one wins."""
    seen = set()
    unique = []
    for obj in objectives:
        key = (obj.get("name") or "").strip().lower()
        if not key or key in seen:
            continue
        seen.add(key)
        unique.append(obj)
    return unique


class StrategyAdvisor(BaseAssistant):
    """Company research and strategic objective generation."""

    def research_company(self, company: dict, *, scan_id: str | None = None) -> dict:
        """
        Returns:
            dict with keys: research, error
        """
        result = {"research": "", "error": None}
        if not company or not company.get("name"):
            result["error"] = "company name is required"
            return result

        messages = self.prompt_registry.render(
            "company_research",
            name=company.get("name"),
            website=company.get("website") or "Not provided",
            country=company.get("country") or "Not provided",
            industry=company.get("industry") or "Not provided",
            description=company.get("description") or "Not provided",
        )
        try:
            result["research"] = self._chat(
                messages, purpose="company_research", scan_id=scan_id, max_tokens=2000,
            ).strip()
        except Exception as exc:
            logger.error("Company research failed: %s", exc, extra={"scan_id": scan_id})
            result["error"] = f"AI analysis failed: {exc}"
            return result

        if not result["research"]:
            result["error"] = "Empty research returned"
        return result

    def generate_objectives(
        self,
        company: dict,
        lifecycles: list[dict],
        *,
        scan_id: str | None = None,
    ) -> dict:
        """
        Returns:
            dict with keys: objectives ([{name, description, status}]), raw, error
        """
        result = {"objectives": [], "raw": "", "error": None}

        messages = self.prompt_registry.render(
            "strategic_objectives",
            company_section=company_section(company),
            lifecycles_section=lifecycles_section(lifecycles),
        )
        try:
            content = self._chat(messages, purpose="strategic_objectives", scan_id=scan_id)
        except Exception as exc:
            logger.error("Objective generation failed: %s", exc, extra={"scan_id": scan_id})
            result["error"] = f"AI analysis failed: {exc}"
            return result

        result["raw"] = content
        items = self._parse_response(content).get("objectives")
        if not isinstance(items, list):
            result["error"] = "Could not parse objectives from AI response"
            return result

        objectives = []
        for item in items:
            if not isinstance(item, dict) or not str(item.get("name") or "").strip():
                continue
            objectives.append({
                "name": str(item["name"]).strip(),
                "description": str(item.get("description") or "").strip(),
                "status": NEW_OBJECTIVE_STATUS,
            })
        objectives = dedupe_objectives(objectives)
        if not objectives:
            result["error"] = "AI response contained no objectives"
            return result

        result["objectives"] = objectives
        return result

    def generate_scoring_criteria(
        self,
        objective_name: str,
        objective_description: str,
        *,
        company: dict | None,
        lifecycles: list[dict],
        strategy_documents: list[dict],
        scan_id: str | None = None,
    ) -> dict:
        """
        Returns:
            dict with keys: scoring_criteria ({low, medium, high}), error
        """
        result = {"scoring_criteria": {}, "error": None}

        if strategy_documents:
            docs = ["### Strategy Documents"]
            for doc in strategy_documents:
                docs.append(f"#### {doc.get('file_name') or 'Strategy document'}\n{doc.get('summary', '')}")
            strategy_section = "\n\n".join(docs)
        else:
            strategy_section = "No strategy documents available."

        messages = self.prompt_registry.render(
            "scoring_criteria",
            company_section=company_section(company),
            lifecycles_section=lifecycles_section(lifecycles),
            strategy_docs_section=strategy_section,
            objective_name=objective_name,
            objective_description=objective_description,
        )
        try:
            content = self._chat(messages, purpose="scoring_criteria", scan_id=scan_id)
        except Exception as exc:
            logger.error("Scoring criteria generation failed: %s", exc, extra={"scan_id": scan_id})
            result["error"] = f"AI analysis failed: {exc}"
            return result

        criteria = self._parse_response(content).get("scoring_criteria")
        if not isinstance(criteria, dict) or not all(criteria.get(k) for k in ("low", "medium", "high")):
            result["error"] = "Could not parse scoring criteria from AI response"
            return result

        result["scoring_criteria"] = {k: str(criteria[k]) for k in ("low", "medium", "high")}
        return result
