"""
Process Scan Platform
Tests — data room documents: ingest, HRIS parsing, summaries and document chat.
"""

import pytest
from sqlalchemy import func, select

from app.ai.assistants.data_room import NO_RESULTS_MESSAGE
from app.models import db as _db
from app.models.ai import AIUsageLog
from app.models.scan import PLACEHOLDER_SUMMARIZATION, DocumentChunk
from app.services.document_service import parse_employees_csv

HRIS_CSV = (
    "Employee ID,Full Name,Job Title,Department\n"
    "E-1,Ann Lee,Chief Financial Officer,Finance\n"
    "E-2,Bo Chan,Head of Operations,Operations\n"
    "E-3,Cy Diaz,Order Desk Lead,Sales\n"
)


def _ingest(client, scan_url, **overrides):
    payload = {
        "document_type": "Org. Structure",
        "file_name": "org.txt",
        "content": "The company has three divisions.\n\nSales reports to the COO.",
    }
    payload.update(overrides)
    return client.post(f"{scan_url}/documents", json=payload)


def _chunk_count(document_id):
    return _db.session.execute(
        select(func.count()).select_from(DocumentChunk).where(DocumentChunk.document_id == document_id)
    ).scalar()


# ═════════════════════════════════════════════════════════════════════════════
# 1. HRIS CSV PARSING
# ═════════════════════════════════════════════════════════════════════════════

class TestParseEmployeesCSV:

    def test_header_aliases(self):
        employees = parse_employees_csv(HRIS_CSV)
        assert len(employees) == 3
        assert employees[0] == {
            "id": "E-1",
            "name": "Ann Lee",
            "role": "Chief Financial Officer",
            "department": "Finance",
        }

    def test_first_and_last_name_joined(self):
        csv = "First Name,Last Name,Position\nAnn,Lee,CFO\n,,\n"
        employees = parse_employees_csv(csv)
        assert employees == [{"id": "1", "name": "Ann Lee", "role": "CFO", "department": ""}]

    def test_empty_content(self):
        assert parse_employees_csv("") == []


# ═════════════════════════════════════════════════════════════════════════════
# 2. INGEST / RESET
# ═════════════════════════════════════════════════════════════════════════════

class TestDocumentIngest:

    def test_list_placeholders(self, client, scan_url):
        body = client.get(f"{scan_url}/documents").get_json()
        assert body["total"] == 7
        assert {d["status"] for d in body["items"]} == {"placeholder"}

    def test_filter_by_type(self, client, scan_url):
        body = client.get(f"{scan_url}/documents", query_string={"document_type": "General Ledger"}).get_json()
        assert body["total"] == 1
        assert body["items"][0]["document_type"] == "General Ledger"

    def test_ingest_replaces_placeholder(self, client, scan_url):
        res = _ingest(client, scan_url)
        assert res.status_code == 201
        body = res.get_json()
        assert body["status"] == "processed"
        assert body["chunks"] == 1
        assert body["file_name"] == "org.txt"
        assert body["summary"].startswith("## Summary")
        assert body["summarization"] == body["summary"]

        listed = client.get(f"{scan_url}/documents", query_string={"document_type": "Org. Structure"}).get_json()
        assert listed["total"] == 1

    def test_ingest_new_type_creates_document(self, client, scan_url):
        res = _ingest(client, scan_url, document_type="Board Minutes")
        assert res.status_code == 201
        assert client.get(f"{scan_url}/documents").get_json()["total"] == 8

    def test_hris_csv_parses_employees(self, client, scan_url):
        res = _ingest(
            client, scan_url,
            document_type="HRIS Reports", file_name="employees.csv",
            content=HRIS_CSV, content_type="text/csv",
        )
        body = res.get_json()
        assert [e["name"] for e in body["employees"]] == ["Ann Lee", "Bo Chan", "Cy Diaz"]

    def test_hris_text_has_no_employees(self, client, scan_url):
        res = _ingest(client, scan_url, document_type="HRIS Reports", file_name="headcount.txt")
        assert res.get_json()["employees"] == []

    def test_content_required(self, client, scan_url):
        res = _ingest(client, scan_url, content="   ")
        assert res.status_code == 400
        assert res.get_json()["details"] == {"content": "required"}

    def test_type_or_id_required(self, client, scan_url):
        res = client.post(f"{scan_url}/documents", json={"content": "text"})
        assert res.status_code == 400

    def test_unknown_document_id(self, client, scan_url):
        res = client.post(f"{scan_url}/documents", json={"document_id": "missing", "content": "text"})
        assert res.status_code == 404

    def test_failed_summary_leaves_uploaded(self, client, scan_url, fake_gateway):
        fake_gateway.queue(RuntimeError("provider down"))
        body = _ingest(client, scan_url).get_json()
        assert body["status"] == "uploaded"
        assert body["summary"] is None
        assert body["chunks"] == 1

    def test_reingest_replaces_chunks(self, client, scan_url):
        first = _ingest(client, scan_url).get_json()
        long_text = "\n\n".join(f"Paragraph {i}. " + "x" * 5000 for i in range(3))
        second = _ingest(client, scan_url, content=long_text).get_json()
        assert second["id"] == first["id"]
        assert second["chunks"] == 3

        _db.session.expire_all()
        assert _chunk_count(first["id"]) == 3

    def test_reset_to_placeholder(self, client, scan_url):
        document = _ingest(
            client, scan_url,
            document_type="HRIS Reports", file_name="employees.csv", content=HRIS_CSV,
        ).get_json()

        res = client.delete(f"{scan_url}/documents/{document['id']}")
        body = res.get_json()
        assert res.status_code == 200
        assert body["status"] == "placeholder"
        assert body["file_name"] is None
        assert body["employees"] == []
        assert body["summarization"] == PLACEHOLDER_SUMMARIZATION

        _db.session.expire_all()
        assert _chunk_count(document["id"]) == 0

    def test_usage_is_logged_per_scan(self, client, scan_url, scan):
        _ingest(client, scan_url)
        _db.session.expire_all()
        purposes = set(_db.session.execute(
            select(AIUsageLog.purpose).where(AIUsageLog.scan_id == scan["id"])
        ).scalars())
        assert {"embedding", "document_summary"} <= purposes


# ═════════════════════════════════════════════════════════════════════════════
# 3. SUMMARIES
# ═════════════════════════════════════════════════════════════════════════════

class TestSummaries:

    def test_manual_summary(self, client, scan_url):
        document = _ingest(client, scan_url).get_json()
        res = client.post(f"{scan_url}/documents/{document['id']}/summary", json={"summary": "Edited"})
        assert res.get_json()["summary"] == "Edited"
        assert res.get_json()["summarization"] == "Edited"

    def test_summary_must_be_string(self, client, scan_url):
        document = _ingest(client, scan_url).get_json()
        res = client.post(f"{scan_url}/documents/{document['id']}/summary", json={"summary": 5})
        assert res.status_code == 400

    def test_prompt_on_placeholder_only_stores(self, client, scan_url):
        res = client.post(
            f"{scan_url}/documents/summarization-prompt",
            json={"prompt": "List every division.", "document_type": "Org. Structure"},
        )
        body = res.get_json()
        assert res.status_code == 200
        assert body["summarization_prompt"] == "List every division."
        assert body["resummarized"] is False

    def test_prompt_resummarizes_ingested_document(self, client, scan_url, fake_gateway):
        document = _ingest(client, scan_url).get_json()
        fake_gateway.queue("### Divisions\n- Sales")
        res = client.post(
            f"{scan_url}/documents/summarization-prompt",
            json={"prompt": "List every division.", "document_id": document["id"]},
        )
        body = res.get_json()
        assert body["resummarized"] is True
        assert body["summary"] == "### Divisions\n- Sales"
        assert "List every division." in fake_gateway.calls[-1]["messages"][-1]["content"]

    def test_prompt_required(self, client, scan_url):
        res = client.post(f"{scan_url}/documents/summarization-prompt", json={"document_type": "Org. Structure"})
        assert res.status_code == 400


# ═════════════════════════════════════════════════════════════════════════════
# 4. DOCUMENT CHAT
# ═════════════════════════════════════════════════════════════════════════════

class TestDocumentChat:

    def test_query_required(self, client, scan_url):
        res = client.post(f"{scan_url}/chat", json={"query": " "})
        assert res.status_code == 400

    def test_no_documents_indexed(self, client, scan_url):
        body = client.post(f"{scan_url}/chat", json={"query": "What divisions exist?"}).get_json()
        assert body["message"] == NO_RESULTS_MESSAGE
        assert body["results"] == []
        assert body["query"] == "What divisions exist?"

    def test_answers_from_chunks(self, client, scan_url, fake_gateway):
        _ingest(client, scan_url)
        fake_gateway.queue("There are three divisions.")
        body = client.post(
            f"{scan_url}/chat",
            json={
                "query": "What divisions exist?",
                "conversation_history": [
                    {"role": "user", "content": "Hi"},
                    {"role": "system", "content": "ignored"},
                ],
            },
        ).get_json()
        assert body["message"] == "There are three divisions."
        assert len(body["results"]) == 1

        messages = fake_gateway.calls[-1]["messages"]
        assert [m["role"] for m in messages] == ["system", "user", "user"]
        assert "three divisions" in messages[-1]["content"]
        assert "Acme Scan" in messages[-1]["content"]

    def test_llm_failure_returns_raw_sections(self, client, scan_url, fake_gateway):
        _ingest(client, scan_url)
        fake_gateway.queue(RuntimeError("timeout"))
        body = client.post(f"{scan_url}/chat", json={"query": "divisions"}).get_json()
        assert body["message"].startswith("Based on the documents you've uploaded")

    @pytest.mark.parametrize("status", ["7 of 7 documents are still placeholders."])
    def test_document_status_answers_without_hits(self, client, scan_url, fake_gateway, status):
        fake_gateway.queue("Please upload the HRIS report first.")
        body = client.post(
            f"{scan_url}/chat", json={"query": "What next?", "document_status": status},
        ).get_json()
        assert body["message"] == "Please upload the HRIS report first."
        assert status in fake_gateway.calls[-1]["messages"][-1]["content"]
