"""
Process Scan Platform
AI module.

Submodules:
    - gateway: LLM Gateway (provider routing, retry, cost tracking)
    - rag: document chunking, embedding and similarity search
    - prompt_registry: built-in prompt templates with YAML overrides
    - assistants: one class per AI capability

The accessors below create one instance per Flask app on first use, so
tests can install a scripted gateway by setting ``app._ai_gateway``.
"""

from flask import current_app

from app.ai.gateway import LLMGateway
from app.ai.prompt_registry import PromptRegistry
from app.ai.rag import DocumentIndex


def get_gateway():
    """Lazy-init the LLM gateway for the current app."""
    app = current_app._get_current_object()
    if not hasattr(app, "_ai_gateway"):
        app._ai_gateway = LLMGateway(app.config)
    return app._ai_gateway


def get_prompt_registry():
    """Lazy-init the prompt registry for the current app."""
    app = current_app._get_current_object()
    if not hasattr(app, "_ai_prompt_registry"):
        app._ai_prompt_registry = PromptRegistry(app.config.get("PROMPTS_DIR"))
    return app._ai_prompt_registry


def get_document_index():
    """Document index bound to the current gateway."""
    return DocumentIndex(
        get_gateway(),
        chunk_size=current_app.config.get("DOCUMENT_CHUNK_SIZE", 8000),
    )
