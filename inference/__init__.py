"""
Model boundary layer for the AI chat endpoint.

This package keeps /api/ai-chat agnostic of the underlying provider.

Supported backends:
- StubModelBackend: Deterministic fake model (tests, offline development)
- OpenRouterModelBackend: OpenRouter chat completions

Example usage:
    from inference import StubModelBackend, ModelRequest

    backend = StubModelBackend()
    request = ModelRequest(task="chat", prompt="Kapan waktu sholat Jumat?")
    response = backend.generate(request)
"""

from .types import ModelRequest, ModelResponse, ModelStatus
from .base import ModelBackend
from .stub import StubModelBackend
from .openrouter import OpenRouterModelBackend, SYSTEM_PROMPT

__all__ = [
    "ModelRequest",
    "ModelResponse",
    "ModelStatus",
    "ModelBackend",
    "StubModelBackend",
    "OpenRouterModelBackend",
    "SYSTEM_PROMPT",
]
