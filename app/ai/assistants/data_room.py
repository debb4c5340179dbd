"""
Process Scan Platform
Data Room Assistant.

Three capabilities:
    1. summarize_document — full document text → markdown summary driven by the
       document's own summarization prompt and agent role
    2. brief_document     — top-ranked sections → 300-500 word summary
    3. chat               — question answering over a scan's indexed documents
"""

import logging

from app.ai.assistants.base import BaseAssistant, clean_history

logger = logging.getLogger(__name__)

DEFAULT_AGENT_ROLE = (
    "You are a business analyst who extracts and summarizes key information from business documents."
)
DEFAULT_INSTRUCTIONS = "Summarize the key information in this document."
FORMAT_INSTRUCTIONS = (
    "Format lists with dashes (-) and use ** for bold text and * for italic. "
    "Use ### for section headings."
)
NO_RESULTS_MESSAGE = (
    "I don't have any relevant information about that in the documents you've uploaded. "
    "Please try asking something else or upload more documents."
)
RAW_SECTION_PREVIEW = 500
MAX_SUMMARY_INPUT_CHARS = 60000


class DataRoomAssistant(BaseAssistant):
    """Summaries and Q&A over the documents uploaded to a scan."""

    # ── Summaries ─────────────────────────────────────────────────────────

    def summarize_document(
        self,
        *,
        document_type: str,
        file_name: str,
        content: str,
        instructions: str | None = None,
        agent_role: str | None = None,
        company: dict | None = None,
        scan_id: str | None = None,
    ) -> dict:
        """
        Returns:
            dict with keys: summary, error
        """
        result = {"summary": "", "error": None}
        if not content or not content.strip():
            result["error"] = "content is required"
            return result

        company_block = ""
        if company:
            company_block = (
                "Company information:\n"
                f"Name: {company.get('name') or 'N/A'}\n"
                f"Industry: {company.get('industry') or 'N/A'}\n"
                f"Country: {company.get('country') or 'N/A'}\n"
                f"Description: {company.get('description') or 'N/A'}\n\n"
            )

        messages = self.prompt_registry.render(
            "document_summary",
            agent_role=agent_role or DEFAULT_AGENT_ROLE,
            document_type=document_type,
            file_name=file_name or "Untitled",
            company_section=company_block,
            instructions=instructions or DEFAULT_INSTRUCTIONS,
            content=content[:MAX_SUMMARY_INPUT_CHARS],
        )
        try:
            result["summary"] = self._chat(messages, purpose="document_summary", scan_id=scan_id).strip()
        except Exception as exc:
            logger.error("DataRoomAssistant summarize failed: %s", exc, extra={"scan_id": scan_id})
            result["error"] = f"AI analysis failed: {exc}"
            return result

        if not result["summary"]:
            result["error"] = "Empty summary returned"
        return result

    def brief_document(
        self,
        *,
        document_type: str,
        file_name: str,
        sections: list[str],
        scan_id: str | None = None,
    ) -> dict:
        """Summarise a document from its most relevant sections only."""
        result = {"summary": "", "error": None}
        if not sections:
            result["error"] = "no sections to summarise"
            return result

        joined = "\n\n".join(f"Section {i}:\n{text}" for i, text in enumerate(sections, start=1))
        messages = self.prompt_registry.render(
            "document_brief",
            document_type=document_type,
            file_name=file_name or "Untitled",
            sections=joined,
        )
        try:
            result["summary"] = self._chat(messages, purpose="document_summary", scan_id=scan_id).strip()
        except Exception as exc:
            logger.error("DataRoomAssistant brief failed: %s", exc, extra={"scan_id": scan_id})
            result["error"] = f"AI analysis failed: {exc}"
        return result

    # ── Document chat ─────────────────────────────────────────────────────

    def chat(
        self,
        *,
        scan_id: str,
        query: str,
        conversation_history: list | None = None,
        document_status: str | None = None,
        company: dict | None = None,
        top_k: int = 5,
    ) -> dict:
        """
        Answer ``query`` from the scan's indexed document sections.

        Returns:
            dict with keys: message, results ([{text, score}]), query, error
        """
        result = {"message": "", "results": [], "query": query, "error": None}

        hits = self.index.search(scan_id, query, top_k=top_k) if self.index else []
        result["results"] = [{"text": h["text"], "score": h["score"]} for h in hits]

        if not hits and not document_status:
            result["message"] = NO_RESULTS_MESSAGE
            return result

        context = self._build_context(hits, document_status, company)
        messages = self.prompt_registry.render("document_chat", context=context, query=query)
        # History sits between the system persona and the current question
        messages = messages[:1] + clean_history(conversation_history) + messages[1:]

        try:
            result["message"] = self._chat(messages, purpose="document_chat", scan_id=scan_id)
        except Exception as exc:
            logger.warning("Document chat LLM call failed: %s", exc, extra={"scan_id": scan_id})
            if hits:
                result["message"] = self._raw_sections_message(hits)
            else:
                result["message"] = NO_RESULTS_MESSAGE
        return result

    @staticmethod
    def _build_context(hits: list[dict], document_status: str | None, company: dict | None) -> str:
        context = f"{FORMAT_INSTRUCTIONS}\n\n"
        if document_status:
            context += document_status + "\n\n"
        if company:
            context += "### Company Information\n\n"
            for label, key in (("Company Name", "name"), ("Website", "website"),
                               ("Country", "country"), ("Industry", "industry"),
                               ("Description", "description")):
                if company.get(key):
                    context += f"- **{label}:** {company[key]}\n"
            context += "\n"
        if hits:
            context += "Document Content:\n"
            for i, hit in enumerate(hits, start=1):
                context += f"Document section {i}:\n{hit['text']}\n\n"
        return context

    @staticmethod
    def _raw_sections_message(hits: list[dict]) -> str:
        parts = []
        for i, hit in enumerate(hits, start=1):
            text = hit["text"]
            preview = text[:RAW_SECTION_PREVIEW] + ("..." if len(text) > RAW_SECTION_PREVIEW else "")
            parts.append(f"- **Document section {i}:**\n   {preview}")
        return "Based on the documents you've uploaded, here's what I found:\n\n" + "\n\n".join(parts)
