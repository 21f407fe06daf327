import requests
from .base import ModelBackend
from .types import ModelRequest, ModelResponse

OPENROUTER_URL = "https://openrouter.ai/api/v1/chat/completions"

SYSTEM_PROMPT = (
    "Anda adalah asisten AI untuk masjid. Jawab dengan ramah, informatif, "
    "dan sesuai dengan nilai-nilai Islam. Gunakan bahasa Indonesia."
)


class OpenRouterModelBackend(ModelBackend):
    """
    OpenRouter chat-completions backend.

    Synchronous (requests); async callers run it in a worker thread.
    """

    def __init__(
        self,
        api_key: str,
        model_name: str = "z-ai/glm-4.5-air:free",
        base_url: str = OPENROUTER_URL,
        referer: str = "http://localhost:3001",
        app_title: str = "Masjid WhatsApp Bot",
    ):
        """
        Args:
            api_key:    OpenRouter API key (empty → not configured)
            model_name: OpenRouter model slug
            base_url:   Chat completions endpoint
        """
        self.api_key = api_key
        self.model_name = model_name
        self.base_url = base_url
        self.referer = referer
        self.app_title = app_title

    def is_configured(self) -> bool:
        return bool(self.api_key)

    def generate(self, request: ModelRequest) -> ModelResponse:
        """
        POST a [system, user] conversation and return the first choice.

        Returns:
            ModelResponse; never raises
        """
        base_metadata = {
            "backend": "openrouter",
            "model": self.model_name,
        }

        if not self.is_configured():
            return ModelResponse(
                status="fatal_error",
                error_type="not_configured",
                metadata=base_metadata,
            )

        payload = {
            "model": self.model_name,
            "messages": [
                {"role": "system", "content": request.system_prompt or SYSTEM_PROMPT},
                {"role": "user", "content": request.prompt},
            ],
            "max_tokens": request.max_tokens,
            "temperature": request.temperature,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": self.referer,
            "X-Title": self.app_title,
        }

        try:
            resp = requests.post(
                self.base_url,
                json=payload,
                headers=headers,
                timeout=request.timeout_s,
            )
            resp.raise_for_status()
            data = resp.json()
            output = data["choices"][0]["message"]["content"]

            return ModelResponse(
                status="success",
                output=output,
                metadata={**base_metadata, "usage": data.get("usage")},
            )

        except requests.Timeout:
            return ModelResponse(
                status="recoverable_error",
                error_type="timeout",
                metadata=base_metadata,
            )

        except (KeyError, IndexError, TypeError, ValueError) as e:
            return ModelResponse(
                status="recoverable_error",
                error_type="invalid_output",
                metadata={**base_metadata, "error": str(e)},
            )

        except Exception as e:
            return ModelResponse(
                status="fatal_error",
                error_type="backend_unavailable",
                metadata={**base_metadata, "error": str(e)},
            )
