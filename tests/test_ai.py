"""
Process Scan Platform
Tests — AI layer: chunking, similarity, LLM gateway, prompt registry and response parsers.
"""

from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy import select

from app.ai.assistants.base import BaseAssistant, clean_history, company_section
from app.ai.assistants.pain_point_analyst import count_speaker_turns, ensure_markdown_heading
from app.ai.assistants.strategy_advisor import dedupe_objectives
from app.ai.gateway import EMBEDDING_DIM, LLMGateway, LocalStubProvider
from app.ai.prompt_registry import PromptRegistry
from app.ai.rag import _cosine_similarity, chunk_text
from app.models import db as _db
from app.models.ai import AIUsageLog, calculate_cost
from app.models.tenant import Tenant


# ═════════════════════════════════════════════════════════════════════════════
# 1. CHUNKING & SIMILARITY
# ═════════════════════════════════════════════════════════════════════════════

class TestChunkText:

    def test_blank(self):
        assert chunk_text("") == []
        assert chunk_text("  \n\n ") == []

    def test_paragraphs_packed_while_they_fit(self):
        text = "aaaa\n\nbbbb\n\ncccc"
        assert chunk_text(text, max_chars=10) == ["aaaa\n\nbbbb", "cccc"]

    def test_long_paragraph_split_on_sentences(self):
        text = "First sentence here. Second sentence here. Third one."
        assert chunk_text(text, max_chars=25) == [
            "First sentence here.",
            "Second sentence here.",
            "Third one.",
        ]

    def test_long_sentence_hard_split(self):
        assert chunk_text("x" * 25, max_chars=10) == ["x" * 10, "x" * 10, "x" * 5]

    def test_no_chunk_exceeds_limit(self):
        text = "\n\n".join(f"Paragraph {i}. " + "word " * (i * 40) for i in range(1, 8))
        assert all(len(c) <= 200 for c in chunk_text(text, max_chars=200))


class TestCosineSimilarity:

    def test_identical(self):
        assert _cosine_similarity([1.0, 2.0], [1.0, 2.0]) == pytest.approx(1.0)

    def test_orthogonal(self):
        assert _cosine_similarity([1.0, 0.0], [0.0, 1.0]) == 0.0

    @pytest.mark.parametrize("a, b", [([], []), ([1.0], [1.0, 2.0]), ([0.0, 0.0], [1.0, 1.0])])
    def test_degenerate_vectors(self, a, b):
        assert _cosine_similarity(a, b) == 0.0


# ═════════════════════════════════════════════════════════════════════════════
# 2. LLM GATEWAY
# ═════════════════════════════════════════════════════════════════════════════

class TestLocalStubProvider:

    def test_embeddings_deterministic(self):
        stub = LocalStubProvider()
        first, second = stub.embed(["hello", "hello"])
        assert first == second
        assert len(first) == EMBEDDING_DIM

    def test_stakeholders_picked_from_employee_list(self):
        stub = LocalStubProvider()
        msg = 'Available Employees:\n[{"id": "1", "name": "A"}, {"id": "2", "name": "B"}, {"id": "3"}]\n\nSelect'
        content = stub.chat([{"role": "user", "content": msg}])["content"]
        assert content == '[{"id": "1", "name": "A"}, {"id": "2", "name": "B"}]'


class TestLLMGateway:

    def test_falls_back_to_local_without_credentials(self):
        gw = LLMGateway({})
        assert gw.available_providers() == {"local"}
        result = gw.chat([{"role": "user", "content": "hello"}], purpose="document_chat", scan_id="s-1")
        assert result["provider"] == "local"
        assert result["content"].startswith("## Summary")

    def test_configured_providers(self):
        gw = LLMGateway({"OPENAI_API_KEY": "sk-test", "AZURE_OPENAI_ENDPOINT": "https://x", "AZURE_OPENAI_API_KEY": "k"})
        assert gw.available_providers() == {"local", "openai", "azure_openai"}
        _, name = gw._get_provider("gpt-4o")
        assert name == "azure_openai"

    def test_usage_logged(self):
        gw = LLMGateway({})
        gw.chat([{"role": "user", "content": "hello"}], purpose="document_chat", scan_id="s-1")
        log = _db.session.execute(select(AIUsageLog).where(AIUsageLog.scan_id == "s-1")).scalar_one()
        assert log.success is True
        assert log.purpose == "document_chat"
        assert log.provider == "local"

    def test_retries_then_raises(self):
        gw = LLMGateway({})
        failing = MagicMock()
        failing.chat.side_effect = ConnectionError("refused")
        gw._providers["local"] = failing

        with patch.object(LLMGateway, "BACKOFF_BASE", 0):
            with pytest.raises(RuntimeError, match="after 3 retries"):
                gw.chat([{"role": "user", "content": "hi"}], purpose="document_chat", scan_id="s-2")

        assert failing.chat.call_count == 3
        log = _db.session.execute(select(AIUsageLog).where(AIUsageLog.scan_id == "s-2")).scalar_one()
        assert log.success is False
        assert "refused" in log.error_message

    def test_retry_recovers(self):
        gw = LLMGateway({})
        flaky = MagicMock()
        flaky.chat.side_effect = [
            TimeoutError("slow"),
            {"content": "ok", "prompt_tokens": 1, "completion_tokens": 1, "model": "local-stub"},
        ]
        gw._providers["local"] = flaky

        with patch.object(LLMGateway, "BACKOFF_BASE", 0):
            result = gw.chat([{"role": "user", "content": "hi"}])
        assert result["content"] == "ok"

    def test_embed_truncates_and_skips_blank(self):
        gw = LLMGateway({"EMBEDDING_INPUT_LIMIT": 5})
        provider = MagicMock()
        provider.embed.return_value = [[0.1], [0.2]]
        gw._providers["local"] = provider

        vectors = gw.embed(["abcdefgh", "  ", "xyz"])
        assert vectors == [[0.1], [], [0.2]]
        provider.embed.assert_called_once_with(["abcde", "xyz"], "text-embedding-ada-002")

    def test_embed_keeps_input_positions(self):
        gw = LLMGateway({})
        texts = ["", "order entry", None, "   ", "credit check"]
        vectors = gw.embed(texts)

        assert len(vectors) == len(texts)
        assert [bool(v) for v in vectors] == [False, True, False, False, True]
        assert vectors[1] == gw.embed_one("order entry")
        assert vectors[4] == gw.embed_one("credit check")

    def test_embed_empty_input(self):
        gw = LLMGateway({})
        assert gw.embed([]) == []
        assert gw.embed(["", "  "]) == [[], []]
        assert gw.embed_one("   ") == []

    def test_failed_usage_log_keeps_caller_work(self):
        tenant = Tenant(name="Pending Co", slug="pending-co")
        _db.session.add(tenant)

        gw = LLMGateway({})
        with patch("app.ai.gateway.AIUsageLog", side_effect=RuntimeError("log table gone")):
            result = gw.chat([{"role": "user", "content": "hello"}], purpose="document_chat", scan_id="s-9")
        assert result["content"]
        assert tenant in _db.session

        _db.session.commit()
        _db.session.expire_all()
        stored = _db.session.execute(select(Tenant).where(Tenant.slug == "pending-co")).scalar_one()
        assert stored.name == "Pending Co"
        assert _db.session.execute(select(AIUsageLog).where(AIUsageLog.scan_id == "s-9")).first() is None

    def test_cost(self):
        assert calculate_cost("gpt-4o", 1_000_000, 0) == pytest.approx(2.50)
        assert calculate_cost("unknown-model", 1000, 1000) == 0.0


# ═════════════════════════════════════════════════════════════════════════════
# 3. PROMPT REGISTRY
# ═════════════════════════════════════════════════════════════════════════════

class TestPromptRegistry:

    def test_builtin_templates(self):
        names = {t["name"] for t in PromptRegistry().list_templates()}
        assert {"document_summary", "lifecycle_generation", "pain_point_extraction", "interview_chat"} <= names

    def test_render_substitutes_and_keeps_unknown(self):
        messages = PromptRegistry().render("document_chat", context="CTX")
        assert messages[0]["role"] == "system"
        assert messages[1]["content"].startswith("Context information from documents:\n\nCTX")
        assert "{{query}}" in messages[1]["content"]

    def test_unknown_template(self):
        with pytest.raises(KeyError):
            PromptRegistry().render("missing_template")

    def test_yaml_override(self, tmp_path):
        (tmp_path / "chat.yaml").write_text(
            "name: document_chat\nversion: v1\nsystem: Be brief.\nuser: 'Q: {{query}}'\n",
            encoding="utf-8",
        )
        (tmp_path / "broken.yaml").write_text("name: [unclosed\n", encoding="utf-8")

        messages = PromptRegistry(str(tmp_path)).render("document_chat", query="hi")
        assert messages == [
            {"role": "system", "content": "Be brief."},
            {"role": "user", "content": "Q: hi"},
        ]

    def test_missing_directory_uses_defaults(self, tmp_path):
        registry = PromptRegistry(str(tmp_path / "nope"))
        assert registry.get("document_chat") is not None


# ═════════════════════════════════════════════════════════════════════════════
# 4. RESPONSE PARSERS & CONTEXT HELPERS
# ═════════════════════════════════════════════════════════════════════════════

class TestParsers:

    @pytest.mark.parametrize("content, expected", [
        ('{"a": 1}', {"a": 1}),
        ('```json\n{"a": 1}\n```', {"a": 1}),
        ('Sure! {"a": 2} Hope that helps.', {"a": 2}),
        ("[1, 2]", {}),
        ("no json", {}),
        ("", {}),
    ])
    def test_parse_response(self, content, expected):
        assert BaseAssistant._parse_response(content) == expected

    def test_parse_array(self):
        assert BaseAssistant._parse_array('Here: [{"id": 1}]') == [{"id": 1}]
        assert BaseAssistant._parse_array("none") == []
        assert BaseAssistant._parse_array("[broken") == []

    def test_dedupe_objectives(self):
        objectives = [{"name": "Grow"}, {"name": " grow"}, {"name": ""}, {"name": "Save"}]
        assert dedupe_objectives(objectives) == [{"name": "Grow"}, {"name": "Save"}]

    def test_speaker_turns(self):
        assert count_speaker_turns("A: hi\nB: hello\nno speaker") == 2

    def test_markdown_heading(self):
        assert ensure_markdown_heading("plain") == "## Summary\n\nplain"
        assert ensure_markdown_heading("## Already") == "## Already"

    def test_clean_history(self):
        history = [
            {"role": "user", "content": "a"},
            {"role": "system", "content": "b"},
            {"role": "assistant", "content": 3},
            "junk",
        ]
        assert clean_history(history) == [{"role": "user", "content": "a"}]

    def test_company_section(self):
        assert company_section(None) == "No company information available"
        section = company_section({"name": "Acme", "research": "Deep dive"}, include_research=True)
        assert "- **Name**: Acme" in section
        assert "- **Industry**: Not specified" in section
        assert "- **Research**: Deep dive" in section
