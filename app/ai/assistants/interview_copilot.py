"""
Process Scan Platform
Interview Copilot ("Ora").

Answers the interviewer during a stakeholder interview for one lifecycle,
using company info, the lifecycle's process tree and the active interview
modes as context.
"""

import logging

from app.ai.assistants.base import BaseAssistant, NOT_SPECIFIED, clean_history

logger = logging.getLogger(__name__)

DEFAULT_MODES = {"chat": True, "interview": False, "painpoint": False}
FORMAT_INSTRUCTIONS = (
    "Format lists with dashes (-) and use ** for bold text and * for italic. "
    "Use ### for section headings."
)


class InterviewCopilot(BaseAssistant):

    def chat(
        self,
        *,
        query: str,
        lifecycle: dict,
        company: dict | None = None,
        conversation_history: list | None = None,
        lifecycle_context: str = "",
        active_modes: dict | None = None,
        format_instructions: str | None = None,
        scan_id: str | None = None,
    ) -> dict:
        """
        Returns:
            dict with keys: message, query, error
        """
        result = {"message": "", "query": query, "error": None}

        modes = dict(DEFAULT_MODES)
        if isinstance(active_modes, dict):
            modes.update({k: bool(v) for k, v in active_modes.items()})

        context = (format_instructions or FORMAT_INSTRUCTIONS) + "\n\n"
        context += self._build_context(lifecycle, company, lifecycle_context, modes)

        messages = self.prompt_registry.render("interview_chat", context=context, query=query)
        messages = messages[:1] + clean_history(conversation_history) + messages[1:]

        try:
            result["message"] = self._chat(messages, purpose="interview_chat", scan_id=scan_id)
        except Exception as exc:
            logger.error("Interview chat failed: %s", exc, extra={"scan_id": scan_id})
            result["error"] = f"AI analysis failed: {exc}"
        return result

    @staticmethod
    def _build_context(lifecycle: dict, company: dict | None, lifecycle_context: str, modes: dict) -> str:
        parts = []

        if company:
            parts.append(
                "### Company Information\n"
                f"- **Name**: {company.get('name') or NOT_SPECIFIED}\n"
                f"- **Industry**: {company.get('industry') or NOT_SPECIFIED}\n"
                f"- **Country**: {company.get('country') or NOT_SPECIFIED}\n"
                f"- **Description**: {company.get('description') or NOT_SPECIFIED}\n"
                f"- **Website**: {company.get('website') or NOT_SPECIFIED}"
            )

        if lifecycle_context:
            parts.append(lifecycle_context)

        categories = ((lifecycle.get("processes") or {}).get("process_categories")) or []
        if categories:
            lines = [
                "### Lifecycle Process Details",
                f'The "{lifecycle.get("name", "")}" lifecycle contains the following process '
                "categories and groups:",
            ]
            for ci, category in enumerate(categories, start=1):
                if not category.get("name"):
                    continue
                lines.append(f"#### {ci}. {category['name']}")
                lines.append(category.get("description") or "No description provided")
                if category.get("score") is not None:
                    lines.append(f"Score: {category['score']}")
                for group in category.get("process_groups") or []:
                    if not group.get("name"):
                        continue
                    score = f" (Score: {group['score']})" if group.get("score") is not None else ""
                    lines.append(
                        f"- **{group['name']}**: {group.get('description') or 'No description provided'}{score}"
                    )
            stakeholders = lifecycle.get("stakeholders") or []
            if stakeholders:
                lines.append("### Stakeholders")
                lines.append("The following stakeholders are involved in this lifecycle:")
                for s in stakeholders:
                    lines.append(f"- **{s.get('name', '')}** ({s.get('role', '')})")
            parts.append("\n".join(lines))

        mode_lines = ["### Active Interview Modes"]
        mode_lines += [f"- {mode} mode is active" for mode, active in modes.items() if active]
        parts.append("\n".join(mode_lines))

        instructions = ["### Interview Instructions"]
        if modes.get("interview"):
            instructions.append("- Focus on conducting a structured interview about the business lifecycle")
            instructions.append("- Ask probing questions to understand processes, challenges, and workflows")
        if modes.get("painpoint"):
            instructions.append("- Focus on identifying and documenting specific pain points")
            instructions.append("- When pain points are mentioned, help elaborate on their impacts and root causes")
            instructions.append("- Suggest categorization of pain points (e.g., process, technology, people)")
        instructions.append("- Be concise but thorough in your responses")
        instructions.append("- Use the detailed process information to provide specific insights about processes")
        instructions.append("- Build on previous information from the conversation")
        parts.append("\n".join(instructions))

        return "\n\n".join(parts)
