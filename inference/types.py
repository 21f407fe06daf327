from dataclasses import dataclass
from typing import Optional, Dict, Any, Literal

ModelStatus = Literal["success", "recoverable_error", "fatal_error"]


@dataclass
class ModelRequest:
    task: str                  # "chat" is the only task the gateway issues
    prompt: str
    system_prompt: Optional[str] = None
    max_tokens: int = 500
    temperature: float = 0.7
    timeout_s: Optional[int] = 30
    user_id: Optional[str] = None


@dataclass
class ModelResponse:
    status: ModelStatus
    output: Optional[str] = None
    error_type: Optional[str] = None   # timeout | not_configured | invalid_output | backend_unavailable
    metadata: Optional[Dict[str, Any]] = None
