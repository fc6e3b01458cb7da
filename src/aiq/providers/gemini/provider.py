"""Google Gemini backend over the ``generateContent`` HTTP JSON API.

:class:`GeminiProvider` sends one rendered prompt per call with a blocking
:class:`httpx.Client` and maps every failure onto the
:class:`~aiq.exceptions.ProviderError` family:

- transport failures -> :class:`~aiq.exceptions.ConnectionError_`,
  :class:`~aiq.exceptions.TimeoutError_` or a plain ``ProviderError``;
- non-2xx statuses -> the status table in :data:`_STATUS_ERRORS`;
- a 2xx body carrying ``error`` -> ``ProviderError("Gemini API error: ...")``;
- a body without candidates -> ``ProviderError("No response from Gemini")``.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

import httpx
from pydantic import ConfigDict, Field

from aiq.exceptions import (
    AiqError,
    AuthError,
    ConfigError,
    ConnectionError_,
    ModelNotFoundError,
    ProviderError,
    RateLimitError,
    ServerError,
    TimeoutError_,
)
from aiq.models import ProviderConfig
from aiq.providers.base import InitQuestion, Provider

logger = logging.getLogger(__name__)

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

GEMINI_DEFAULT_CONFIG: dict[str, Any] = {
    "name": "gemini",
    "apiKey": "${GEMINI_API_KEY}",
    "model": "gemini-2.5-flash",
    "temperature": 0.7,
    "maxTokens": 500,
}

GEMINI_MODELS: list[tuple[str, str]] = [
    ("Gemini 2.5 Flash (Recommended)", "gemini-2.5-flash"),
    ("Gemini 2.0 Flash", "gemini-2.0-flash"),
    ("Gemini 2.5 Flash Lite (Faster)", "gemini-2.5-flash-lite"),
    ("Gemini 1.5 Pro (More capable)", "gemini-1.5-pro"),
]

# any 5xx status
_SERVICE_ERROR = (
    ServerError,
    "Gemini service error",
    "The service may be temporarily down. Try again later",
)

# status -> (exception class, message, hint); {model} is filled in at raise time
_STATUS_ERRORS: dict[int, tuple[type[ProviderError], str, str]] = {
    400: (ProviderError, "Invalid request to Gemini", "Check your model name and parameters"),
    401: (AuthError, "Invalid API key", "Check your GEMINI_API_KEY environment variable"),
    403: (AuthError, "Access forbidden", "Ensure your API key has the necessary permissions"),
    404: (ModelNotFoundError, "Model not found", "Model '{model}' may not exist. Try 'gemini-2.0-flash'"),
    429: (RateLimitError, "Rate limit exceeded", "Wait a moment and try again"),
}

_ERROR_CODE_HINTS: dict[int, str] = {
    400: "Check your prompt format",
    401: "Verify your API key",
    403: "Check API key permissions",
    404: "Verify the model name",
    429: "You're sending too many requests. Wait a bit",
}
_DEFAULT_CODE_HINT = "Try again or check your configuration"
_SERVICE_CODE_HINT = "Gemini is having issues. Try again later"

_MIN_API_KEY_LENGTH = 20


class GeminiConfig(ProviderConfig):
    """Provider section for the ``gemini`` backend.

    Keys are camelCase in the config file (``apiKey``, ``maxTokens``,
    ``baseUrl``) and snake_case on the model.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    api_key: Optional[str] = Field(default=None, alias="apiKey")
    model: Optional[str] = None
    temperature: float = 0.7
    max_tokens: int = Field(default=500, alias="maxTokens")
    base_url: str = Field(default=GEMINI_BASE_URL, alias="baseUrl")
    timeout: float = Field(default=60.0, gt=0, description="HTTP timeout in seconds")


def _api_key_check(answer: str) -> bool | str:
    if not answer:
        return "API key is required"
    if len(answer) < _MIN_API_KEY_LENGTH:
        return "That doesn't look like a valid API key"
    return True


class GeminiProvider(Provider):
    """Text generation through Google Gemini.

    Args:
        config: Provider config, already merged with
            :data:`GEMINI_DEFAULT_CONFIG` by the registry.
        display_name: Name shown in progress messages.
        transport: Optional :class:`httpx.BaseTransport`, e.g.
            :class:`httpx.MockTransport` in tests.

    Example::

        provider = GeminiProvider({**GEMINI_DEFAULT_CONFIG, "apiKey": key})
        provider.validate_config()
        text = provider.execute_prompt("Explain this clearly:\\n\\nls -la")
    """

    config_model = GeminiConfig
    config: GeminiConfig

    def __init__(
        self,
        config: Mapping[str, Any],
        display_name: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        super().__init__(config, display_name or "Gemini")
        self._transport = transport

    # ------------------------------------------------------------------ #
    # Provider operations
    # ------------------------------------------------------------------ #

    def validate_config(self) -> None:
        if not self.config.api_key or self.config.api_key.startswith("${"):
            raise ConfigError(
                "Gemini API key not configured",
                hint="Set the GEMINI_API_KEY environment variable or add it to your config file.",
            )
        if not self.config.model:
            raise ConfigError(
                "Gemini model not specified in config",
                hint='Add a model like "gemini-1.5-pro" to your provider config',
            )

    def execute_prompt(self, prompt: str) -> str:
        """Send *prompt* to ``models/{model}:generateContent`` and return the text.

        Raises:
            ConnectionError_: If the API cannot be reached.
            TimeoutError_: If the request exceeds ``timeout``.
            AuthError: On HTTP 401 / 403.
            ModelNotFoundError: On HTTP 404.
            RateLimitError: On HTTP 429.
            ServerError: On HTTP 500 / 502 / 503.
            ProviderError: On any other failure or an empty response.
        """
        url = f"{self.config.base_url.rstrip('/')}/models/{self.config.model}:generateContent"
        body = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self.config.temperature,
                "maxOutputTokens": self.config.max_tokens,
            },
        }

        logger.debug("POST %s (model=%s)", url, self.config.model)
        try:
            with httpx.Client(timeout=self.config.timeout, transport=self._transport) as client:
                response = client.post(url, params={"key": self.config.api_key or ""}, json=body)
        except httpx.ConnectError as exc:
            raise ConnectionError_(
                "Cannot connect to Gemini API", hint="Check your internet connection"
            ) from exc
        except httpx.TimeoutException as exc:
            raise TimeoutError_(
                "Request to Gemini timed out", hint="Try again in a moment"
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderError(
                f"API request failed: {exc}", hint="Check your configuration and try again"
            ) from exc

        if response.is_error:
            self._raise_for_status(response)

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if isinstance(payload, dict) and payload.get("error"):
            error = payload["error"]
            code = error.get("code") if isinstance(error, dict) else None
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise ProviderError(
                f"Gemini API error: {message}",
                hint=_code_hint(code),
            )

        text = _first_candidate_text(payload)
        if text is None:
            raise ProviderError("No response from Gemini", hint="Try rephrasing your prompt")
        return text.strip()

    def validate_connection(self) -> bool:
        try:
            self.execute_prompt("Hi")
        except AiqError:
            raise
        except Exception as exc:
            logger.debug("Gemini connection check failed: %s", exc)
            return False
        return True

    def get_init_questions(self) -> list[InitQuestion]:
        return [
            InitQuestion(
                name="apiKey",
                message="Enter your Gemini API key",
                secret=True,
                validate=_api_key_check,
            ),
            InitQuestion(
                name="model",
                message="Select Gemini model",
                kind="select",
                choices=list(GEMINI_MODELS),
                default=GEMINI_DEFAULT_CONFIG["model"],
            ),
        ]

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _raise_for_status(self, response: httpx.Response) -> None:
        status = response.status_code
        if _is_server_status(status):
            exc_cls, message, hint = _SERVICE_ERROR
        else:
            exc_cls, message, hint = _STATUS_ERRORS.get(
                status, (ProviderError, f"HTTP {status} error", "")
            )

        # A structured error body carries a more precise message.
        try:
            detail = response.json()
        except ValueError:
            detail = None
        if isinstance(detail, dict) and isinstance(detail.get("error"), dict):
            message = detail["error"].get("message") or message

        raise exc_cls(message, hint=hint.format(model=self.config.model) or None)


def _first_candidate_text(payload: Any) -> Optional[str]:
    """Return ``candidates[0].content.parts[0].text``, or ``None`` when absent."""
    try:
        text = payload["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None
    return text if isinstance(text, str) else None


def _is_server_status(code: Any) -> bool:
    return isinstance(code, int) and 500 <= code < 600


def _code_hint(code: Any) -> str:
    if _is_server_status(code):
        return _SERVICE_CODE_HINT
    return _ERROR_CODE_HINTS.get(code, _DEFAULT_CODE_HINT)
