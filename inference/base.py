from abc import ABC, abstractmethod
from .types import ModelRequest, ModelResponse


class ModelBackend(ABC):
    """
    Abstract model boundary.
    The /api/ai-chat route depends ONLY on this interface.
    """

    @abstractmethod
    def is_configured(self) -> bool:
        """Whether the backend has what it needs (API key etc.) to answer."""
        raise NotImplementedError

    @abstractmethod
    def generate(self, request: ModelRequest) -> ModelResponse:
        """Generate a response from the model."""
        raise NotImplementedError
