"""
Process Scan Platform
Lifecycle Architect.

Capabilities:
    1. generate_lifecycles   — document summaries → 3-6 APQC-grounded lifecycles
    2. generate_processes    — one lifecycle → process categories and groups
    3. suggest_stakeholders  — HRIS employees → 2-4 lifecycle stakeholders
"""

import json
import logging

from app.ai.assistants.base import BaseAssistant, company_section

logger = logging.getLogger(__name__)

SUMMARY_SEPARATOR = "\n\n========\n\n"


class LifecycleArchitect(BaseAssistant):
    """Designs the lifecycle / process tree of a scan."""

    def generate_lifecycles(self, document_summaries: list[str], *, scan_id: str | None = None) -> dict:
        """
        Returns:
            dict with keys: lifecycles ([{name, description}]), error
        """
        result = {"lifecycles": [], "error": None}
        if not document_summaries:
            result["error"] = "document summaries are required"
            return result

        messages = self.prompt_registry.render(
            "lifecycle_generation",
            document_summaries=SUMMARY_SEPARATOR.join(document_summaries),
        )
        try:
            content = self._chat(messages, purpose="lifecycle_generation", scan_id=scan_id)
        except Exception as exc:
            logger.error("Lifecycle generation failed: %s", exc, extra={"scan_id": scan_id})
            result["error"] = f"AI analysis failed: {exc}"
            return result

        items = self._parse_response(content).get("lifecycles")
        if not isinstance(items, list):
            result["error"] = "Could not find valid JSON in the response"
            return result

        lifecycles = [
            {"name": str(item["name"]).strip(), "description": str(item.get("description") or "").strip()}
            for item in items
            if isinstance(item, dict) and str(item.get("name") or "").strip()
        ]
        if not lifecycles:
            result["error"] = "No lifecycles were generated"
            return result

        result["lifecycles"] = lifecycles
        return result

    def generate_processes(
        self,
        lifecycle_name: str,
        lifecycle_description: str,
        *,
        company: dict | None = None,
        scan_id: str | None = None,
    ) -> dict:
        """
        Returns:
            dict with keys: processes (parsed JSON object, unvalidated), error
        """
        result = {"processes": None, "error": None}

        messages = self.prompt_registry.render(
            "process_generation",
            lifecycle_name=lifecycle_name,
            lifecycle_description=lifecycle_description or "",
            company_section=company_section(company, include_research=True),
        )
        try:
            content = self._chat(messages, purpose="process_generation", scan_id=scan_id)
        except Exception as exc:
            logger.error("Process generation failed: %s", exc, extra={"scan_id": scan_id})
            result["error"] = f"AI analysis failed: {exc}"
            return result

        parsed = self._parse_response(content)
        if not parsed:
            result["error"] = "No valid JSON found in the response"
            return result
        result["processes"] = parsed
        return result

    def suggest_stakeholders(
        self,
        lifecycle_name: str,
        lifecycle_description: str,
        *,
        categories: list[dict],
        employees: list[dict],
        company: dict | None = None,
        scan_id: str | None = None,
    ) -> list[dict]:
        """Pick stakeholders from the HRIS employee list. Any failure returns ``[]``."""
        employee_rows = [
            {
                "id": emp.get("id"),
                "name": emp.get("name"),
                "role": emp.get("role") or emp.get("title") or emp.get("position") or emp.get("job_title"),
            }
            for emp in employees
            if isinstance(emp, dict)
        ]
        messages = self.prompt_registry.render(
            "stakeholder_suggestion",
            lifecycle_name=lifecycle_name,
            lifecycle_description=lifecycle_description or "",
            company_section=company_section(company),
            processes_json=json.dumps(categories, indent=2),
            employees_json=json.dumps(employee_rows, indent=2),
        )
        try:
            content = self._chat(messages, purpose="stakeholder_suggestion", scan_id=scan_id)
        except Exception as exc:
            logger.warning("Stakeholder suggestion failed: %s", exc, extra={"scan_id": scan_id})
            return []

        stakeholders = []
        for item in self._parse_array(content):
            if isinstance(item, dict) and item.get("name"):
                stakeholders.append({
                    "id": item.get("id"),
                    "name": item.get("name"),
                    "role": item.get("role") or "",
                })
        return stakeholders
