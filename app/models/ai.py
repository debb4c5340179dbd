"""
Process Scan Platform
AI domain models.

Models:
    - AIUsageLog: Token/cost tracking per LLM call
"""

from datetime import datetime, timezone

from app.models import db


# ── Constants ────────────────────────────────────────────────────────────────

# USD per 1M tokens
TOKEN_COSTS = {
    "gpt-4o-mini":                 {"input": 0.15, "output": 0.60},
    "gpt-4o":                      {"input": 2.50, "output": 10.00},
    "gpt-4-turbo":                 {"input": 10.00, "output": 30.00},
    "gpt-35-turbo":                {"input": 0.50, "output": 1.50},
    "text-embedding-3-small":      {"input": 0.02, "output": 0.00},
    "text-embedding-3-large":      {"input": 0.13, "output": 0.00},
    "text-embedding-ada-002":      {"input": 0.10, "output": 0.00},
}


def calculate_cost(model: str, prompt_tokens: int, completion_tokens: int) -> float:
    """Calculate USD cost for a given model + token counts."""
    costs = TOKEN_COSTS.get(model, {"input": 0.0, "output": 0.0})
    return (prompt_tokens * costs["input"] + completion_tokens * costs["output"]) / 1_000_000


# ── AIUsageLog ────────────────────────────────────────────────────────────────

class AIUsageLog(db.Model):
    """
    Tracks token usage and cost for every LLM API call.
    Aggregated per scan for cost monitoring.
    """

    __tablename__ = "ai_usage_logs"

    id = db.Column(db.Integer, primary_key=True)
    provider = db.Column(db.String(30), nullable=False, comment="azure_openai / openai / local")
    model = db.Column(db.String(80), nullable=False)
    prompt_tokens = db.Column(db.Integer, default=0)
    completion_tokens = db.Column(db.Integer, default=0)
    total_tokens = db.Column(db.Integer, default=0)
    cost_usd = db.Column(db.Float, default=0.0)
    latency_ms = db.Column(db.Integer, default=0, comment="End-to-end latency in milliseconds")

    # Context (scan_id is informational, no FK so logs survive scan deletion)
    purpose = db.Column(db.String(100), default="", comment="e.g. lifecycle_generation")
    scan_id = db.Column(db.String(36), nullable=True, index=True)

    success = db.Column(db.Boolean, default=True)
    error_message = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            "id": self.id,
            "provider": self.provider,
            "model": self.model,
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.total_tokens,
            "cost_usd": round(self.cost_usd or 0.0, 6),
            "latency_ms": self.latency_ms,
            "purpose": self.purpose,
            "scan_id": self.scan_id,
            "success": self.success,
            "error_message": self.error_message,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
