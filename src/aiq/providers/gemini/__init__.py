"""Google Gemini provider.

Implements the ``gemini`` backend, which sends prompts to the Gemini
``generateContent`` endpoint with an API key passed as a query parameter.

See Also:
    :class:`~aiq.providers.gemini.provider.GeminiProvider`
    :mod:`aiq.providers.base` for the provider contract.
"""

from aiq.providers.gemini.provider import (
    GEMINI_BASE_URL,
    GEMINI_DEFAULT_CONFIG,
    GeminiConfig,
    GeminiProvider,
)

__all__ = ["GEMINI_BASE_URL", "GEMINI_DEFAULT_CONFIG", "GeminiConfig", "GeminiProvider"]
