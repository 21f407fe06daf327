from .base import ModelBackend
from .types import ModelRequest, ModelResponse


class StubModelBackend(ModelBackend):
    """
    Deterministic fake model for testing and offline development.

    Echoes the prompt back; task "fail" yields a recoverable error.
    """

    def is_configured(self) -> bool:
        return True

    def generate(self, request: ModelRequest) -> ModelResponse:
        if request.task == "fail":
            return ModelResponse(
                status="recoverable_error",
                error_type="invalid_output",
                metadata={"backend": "stub"},
            )

        return ModelResponse(
            status="success",
            output=f"[stub] {request.prompt}",
            metadata={"backend": "stub", "model": "stub"},
        )
