"""
Process Scan Platform
LLM Gateway.

Provider-agnostic LLM router with:
    - Azure OpenAI, OpenAI and a local stub provider
    - Auto-retry with exponential backoff
    - Token tracking & cost logging (ai_usage_logs)
    - Fallback to the local stub when a provider has no credentials

Usage:
    from app.ai.gateway import LLMGateway
    gw = LLMGateway()
    result = gw.chat(
        [{"role": "user", "content": "Summarise this document"}],
        purpose="document_summary",
        scan_id=scan.id,
    )
"""

import hashlib
import json
import logging
import os
import re
import threading
import time
from abc import ABC, abstractmethod

from flask import current_app, has_app_context
from openai import AzureOpenAI, OpenAI

from app.models import db
from app.models.ai import AIUsageLog, calculate_cost

logger = logging.getLogger(__name__)

EMBEDDING_DIM = 1536
DEFAULT_EMBEDDING_INPUT_LIMIT = 10000


# ── Provider Abstract Base ────────────────────────────────────────────────────

class LLMProvider(ABC):
    """Abstract interface for LLM providers."""

    @abstractmethod
    def chat(self, messages: list, model: str, **kwargs) -> dict:
        """
        Send a chat completion request.

        Args:
            messages: List of {"role": "...", "content": "..."} dicts.
            model: Model identifier string.
            **kwargs: temperature, max_tokens, etc.

        Returns:
            dict with keys: content, prompt_tokens, completion_tokens, model
        """
        ...

    @abstractmethod
    def embed(self, texts: list[str], model: str) -> list[list[float]]:
        """
        Generate embeddings for a list of texts.

        Returns:
            List of float vectors (one per input text).
        """
        ...


# ── Azure OpenAI Provider ─────────────────────────────────────────────────────

class AzureOpenAIProvider(LLMProvider):
    """Azure-hosted OpenAI deployments. Model names resolve to deployment names."""

    def __init__(self, *, endpoint, api_key, api_version, chat_deployment, embedding_deployment):
        self.endpoint = endpoint
        self.api_key = api_key
        self.api_version = api_version
        self.chat_deployment = chat_deployment
        self.embedding_deployment = embedding_deployment
        self._client = None

    def _get_client(self):
        if self._client is None:
            self._client = AzureOpenAI(
                api_key=self.api_key,
                api_version=self.api_version,
                azure_endpoint=self.endpoint,
            )
        return self._client

    def chat(self, messages: list, model: str = "gpt-4o", **kwargs) -> dict:
        client = self._get_client()
        response = client.chat.completions.create(
            model=self.chat_deployment or model,
            messages=messages,
            max_tokens=kwargs.get("max_tokens", 4096),
            temperature=kwargs.get("temperature", 0.3),
        )
        choice = response.choices[0]
        return {
            "content": choice.message.content or "",
            "prompt_tokens": response.usage.prompt_tokens,
            "completion_tokens": response.usage.completion_tokens,
            "model": model,
        }

    def embed(self, texts: list[str], model: str = "text-embedding-ada-002") -> list[list[float]]:
        client = self._get_client()
        response = client.embeddings.create(model=self.embedding_deployment or model, input=texts)
        return [item.embedding for item in response.data]


# ── OpenAI Provider ───────────────────────────────────────────────────────────

class OpenAIProvider(LLMProvider):
    """OpenAI GPT + Embedding provider."""

    def __init__(self, api_key: str):
        self.api_key = api_key
        self._client = None

    def _get_client(self):
        if self._client is None:
            self._client = OpenAI(api_key=self.api_key)
        return self._client

    def chat(self, messages: list, model: str = "gpt-4o-mini", **kwargs) -> dict:
        client = self._get_client()
        response = client.chat.completions.create(
            model=model,
            messages=messages,
            max_tokens=kwargs.get("max_tokens", 4096),
            temperature=kwargs.get("temperature", 0.3),
        )
        choice = response.choices[0]
        return {
            "content": choice.message.content or "",
            "prompt_tokens": response.usage.prompt_tokens,
            "completion_tokens": response.usage.completion_tokens,
            "model": model,
        }

    def embed(self, texts: list[str], model: str = "text-embedding-3-small") -> list[list[float]]:
        client = self._get_client()
        response = client.embeddings.create(model=model, input=texts)
        return [item.embedding for item in response.data]


# ── Local Stub Provider (for dev/test without API keys) ──────────────────────

class LocalStubProvider(LLMProvider):
    """
    Local stub that returns deterministic responses for dev/testing.
    No API key required.

    Responses follow the JSON shapes the assistants ask for, keyed off the
    field names that appear in the last user message.
    """

    def chat(self, messages: list, model: str = "local-stub", **kwargs) -> dict:
        user_msg = ""
        for m in reversed(messages):
            if m["role"] == "user":
                user_msg = m["content"]
                break

        content = self._generate_stub_response(user_msg)

        return {
            "content": content,
            "prompt_tokens": len(user_msg.split()) * 2,  # rough estimate
            "completion_tokens": len(content.split()) * 2,
            "model": "local-stub",
        }

    def embed(self, texts: list[str], model: str = "local-stub") -> list[list[float]]:
        """Generate deterministic pseudo-embeddings for testing."""
        embeddings = []
        for text in texts:
            h = hashlib.sha512(text.encode()).digest()
            vec = []
            for i in range(EMBEDDING_DIM):
                byte_val = h[i % len(h)]
                vec.append((byte_val - 128) / 256.0)
            embeddings.append(vec)
        return embeddings

    @staticmethod
    def _generate_stub_response(user_msg: str) -> str:
        lower = user_msg.lower()

        if "available employees" in lower:
            match = re.search(r"available employees:\s*(\[.*?\])\s*\n\n", user_msg,
                              re.DOTALL | re.IGNORECASE)
            employees = []
            if match:
                try:
                    employees = json.loads(match.group(1))
                except json.JSONDecodeError:
                    employees = []
            return json.dumps(employees[:2])

        if '"scoring_criteria"' in lower:
            return json.dumps({
                "scoring_criteria": {
                    "low": "Pain point has little measurable effect on this objective.",
                    "medium": "Pain point slows progress on this objective in one area.",
                    "high": "Pain point directly blocks this objective across functions.",
                },
            })

        if '"pain_points"' in lower:
            return json.dumps({
                "pain_points": [
                    {
                        "name": "Manual data re-entry",
                        "description": "Order details are re-keyed between systems.",
                        "assigned_process_group": "Unassigned",
                    },
                ],
                "overallSummary": "Interviewees reported duplicated manual work.",
                "summary": "## Summary\n\n- **Manual data re-entry** slows order handling.",
            })

        if '"process_categories"' in lower:
            categories = []
            for c in range(1, 6):
                categories.append({
                    "name": f"Process Category {c}",
                    "description": f"Activities grouped under category {c}.",
                    "process_groups": [
                        {"name": f"Process Group {c}.{g}",
                         "description": f"Work performed in group {c}.{g}."}
                        for g in range(1, 4)
                    ],
                })
            return json.dumps({"process_categories": categories})

        if '"objectives"' in lower:
            return json.dumps({
                "objectives": [
                    {"name": "Reduce Cost to Serve",
                     "description": "Lower the operating cost of core lifecycles."},
                    {"name": "Improve Customer Experience",
                     "description": "Shorten response times and raise satisfaction."},
                    {"name": "Increase Automation",
                     "description": "Automate repetitive manual activities."},
                    {"name": "Strengthen Data Quality",
                     "description": "Create a single trusted source of operational data."},
                ],
            })

        if '"lifecycles"' in lower:
            return json.dumps({
                "lifecycles": [
                    {"name": "Customer Lifecycle",
                     "description": "Acquiring, onboarding, serving and retaining customers."},
                    {"name": "Order to Cash",
                     "description": "From order capture through fulfilment and collection."},
                    {"name": "Hire to Retire",
                     "description": "Recruiting, developing and offboarding employees."},
                ],
            })

        if "company overview" in lower:
            return (
                "## Company Overview\n\nA stub profile generated without an LLM provider.\n\n"
                "## History & Milestones\n\n- Not available offline\n\n"
                "## Industry & Market Position\n\n- Not available offline\n"
            )

        return (
            "## Summary\n\n"
            "- Key points extracted from the provided material.\n"
            "- Generated by the local stub provider."
        )


# ── LLM Gateway (Main Interface) ─────────────────────────────────────────────

class LLMGateway:
    """
    Central gateway for all LLM calls.

    Features:
        - Provider routing based on model name
        - Auto-retry with exponential backoff
        - Token/cost tracking (persisted to DB)
        - Local stub fallback when credentials are missing

    Usage:
        gw = LLMGateway()
        result = gw.chat(
            messages=[{"role": "user", "content": "..."}],
            purpose="lifecycle_generation",
            scan_id=scan.id,
        )
    """

    # Model → provider family. OpenAI-family models prefer Azure when configured.
    PROVIDER_MAP = {
        "gpt-4o-mini": "openai",
        "gpt-4o": "openai",
        "gpt-4-turbo": "openai",
        "gpt-35-turbo": "openai",
        "text-embedding-3-small": "openai",
        "text-embedding-3-large": "openai",
        "text-embedding-ada-002": "openai",
        "local-stub": "local",
    }

    # Seconds; doubled per attempt, capped at 4
    BACKOFF_BASE = 1

    def __init__(self, settings=None):
        if settings is None:
            settings = current_app.config if has_app_context() else os.environ
        self._settings = settings
        self.DEFAULT_CHAT_MODEL = settings.get("LLM_DEFAULT_CHAT_MODEL") or "gpt-4o"
        self.DEFAULT_EMBED_MODEL = settings.get("LLM_DEFAULT_EMBED_MODEL") or "text-embedding-ada-002"
        self.embedding_input_limit = int(
            settings.get("EMBEDDING_INPUT_LIMIT") or DEFAULT_EMBEDDING_INPUT_LIMIT
        )
        self._providers = {}
        self._init_providers()

    def _init_providers(self):
        """Initialize available providers based on configuration."""
        s = self._settings
        self._providers["local"] = LocalStubProvider()

        if s.get("AZURE_OPENAI_ENDPOINT") and s.get("AZURE_OPENAI_API_KEY"):
            self._providers["azure_openai"] = AzureOpenAIProvider(
                endpoint=s.get("AZURE_OPENAI_ENDPOINT"),
                api_key=s.get("AZURE_OPENAI_API_KEY"),
                api_version=s.get("AZURE_OPENAI_API_VERSION") or "2024-02-01",
                chat_deployment=s.get("AZURE_OPENAI_CHAT_DEPLOYMENT_NAME"),
                embedding_deployment=s.get("AZURE_OPENAI_EMBEDDING_DEPLOYMENT"),
            )
        if s.get("OPENAI_API_KEY"):
            self._providers["openai"] = OpenAIProvider(api_key=s.get("OPENAI_API_KEY"))

    def available_providers(self) -> set[str]:
        return set(self._providers)

    def _get_provider(self, model: str) -> tuple[LLMProvider, str]:
        """
        Resolve model to provider. Falls back to local stub if real provider unavailable.
        Returns (provider, provider_name).
        """
        family = self.PROVIDER_MAP.get(model, "openai")
        if family == "openai":
            for name in ("azure_openai", "openai"):
                if name in self._providers:
                    return self._providers[name], name

        if family != "local":
            logger.warning(
                "No provider configured for model '%s'. Falling back to local stub.", model,
            )
        return self._providers["local"], "local"

    def chat(
        self,
        messages: list,
        model: str | None = None,
        *,
        purpose: str = "",
        scan_id: str | None = None,
        max_retries: int = 3,
        **kwargs,
    ) -> dict:
        """
        Send a chat completion request with retry.

        Args:
            messages: Chat messages.
            model: Model identifier (defaults to DEFAULT_CHAT_MODEL).
            purpose: What the call is for (e.g. "lifecycle_generation").
            scan_id: Scan the call was made for (usage log only).
            max_retries: Number of attempts before giving up.
            **kwargs: temperature, max_tokens passed to provider.

        Returns:
            dict: {content, prompt_tokens, completion_tokens, model, cost_usd,
                   latency_ms, provider}

        Raises:
            RuntimeError: when every attempt failed.
        """
        if model is None:
            model = self.DEFAULT_CHAT_MODEL

        provider, provider_name = self._get_provider(model)
        last_error = None

        for attempt in range(1, max_retries + 1):
            start_time = time.time()
            try:
                result = provider.chat(messages, model, **kwargs)
                latency_ms = int((time.time() - start_time) * 1000)

                cost = calculate_cost(model, result["prompt_tokens"], result["completion_tokens"])
                result["cost_usd"] = cost
                result["latency_ms"] = latency_ms
                result["provider"] = provider_name

                self._log_usage(
                    provider=provider_name, model=model,
                    prompt_tokens=result["prompt_tokens"],
                    completion_tokens=result["completion_tokens"],
                    cost_usd=cost, latency_ms=latency_ms,
                    purpose=purpose, scan_id=scan_id, success=True,
                )
                return result

            except Exception as e:
                last_error = e
                logger.warning(
                    "LLM call attempt %d/%d failed: %s", attempt, max_retries, e,
                    extra={"purpose": purpose, "scan_id": scan_id},
                )
                if attempt < max_retries:
                    backoff = min(self.BACKOFF_BASE * 2 ** (attempt - 1), 4)
                    threading.Event().wait(backoff)

        self._log_usage(
            provider=provider_name, model=model,
            prompt_tokens=0, completion_tokens=0,
            cost_usd=0.0, latency_ms=0,
            purpose=purpose, scan_id=scan_id,
            success=False, error_message=str(last_error),
        )
        raise RuntimeError(f"LLM call failed after {max_retries} retries: {last_error}")

    def embed(
        self,
        texts: list[str],
        model: str | None = None,
        *,
        purpose: str = "embedding",
        scan_id: str | None = None,
    ) -> list[list[float]]:
        """
        Generate embeddings with logging.

        Each input is truncated to ``embedding_input_limit`` characters.
        The result has one vector per input, in input order; blank inputs
        get ``[]`` and are not sent to the provider.
        """
        results: list[list[float]] = [[] for _ in texts]
        positions = [i for i, t in enumerate(texts) if t and t.strip()]
        texts = [texts[i][: self.embedding_input_limit] for i in positions]
        if not texts:
            return results
        if model is None:
            model = self.DEFAULT_EMBED_MODEL

        provider, provider_name = self._get_provider(model)
        start_time = time.time()

        try:
            vectors = provider.embed(texts, model)
        except Exception as e:
            logger.error("Embedding failed: %s", e, extra={"scan_id": scan_id})
            self._log_usage(
                provider=provider_name, model=model,
                prompt_tokens=0, completion_tokens=0,
                cost_usd=0.0, latency_ms=int((time.time() - start_time) * 1000),
                purpose=purpose, scan_id=scan_id,
                success=False, error_message=str(e),
            )
            raise

        latency_ms = int((time.time() - start_time) * 1000)
        total_tokens = sum(len(t.split()) * 2 for t in texts)  # rough estimate
        cost = calculate_cost(model, total_tokens, 0)
        self._log_usage(
            provider=provider_name, model=model,
            prompt_tokens=total_tokens, completion_tokens=0,
            cost_usd=cost, latency_ms=latency_ms,
            purpose=purpose, scan_id=scan_id, success=True,
        )
        for position, vector in zip(positions, vectors):
            results[position] = vector
        return results

    def embed_one(self, text: str, **kwargs) -> list[float]:
        """Embed a single text. Blank text returns ``[]``."""
        vectors = self.embed([text or ""], **kwargs)
        return vectors[0] if vectors else []

    # ── Internal Logging ──────────────────────────────────────────────────

    @staticmethod
    def _log_usage(*, provider, model, prompt_tokens, completion_tokens,
                   cost_usd, latency_ms, purpose, scan_id,
                   success, error_message=None):
        """
        Persist a usage log record inside a savepoint; the caller owns the commit.

        A failed write rolls back only the savepoint, so pending work of the
        caller stays in the session.
        """
        try:
            with db.session.begin_nested():
                db.session.add(AIUsageLog(
                    provider=provider, model=model,
                    prompt_tokens=prompt_tokens,
                    completion_tokens=completion_tokens,
                    total_tokens=prompt_tokens + completion_tokens,
                    cost_usd=cost_usd, latency_ms=latency_ms,
                    purpose=purpose, scan_id=scan_id,
                    success=success, error_message=error_message,
                ))
        except Exception as e:
            logger.error("Failed to log AI usage: %s", e, extra={"scan_id": scan_id})
