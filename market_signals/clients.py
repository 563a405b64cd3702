"""Model gateway: the Gemini backend behind structured and search-augmented calls."""

import asyncio
import logging
from typing import Any, Callable

import httpx
from google import genai
from google.genai import types

from market_signals.config import Settings, resolve_gemini_api_key
from market_signals.errors import (
    EmptyResponseError,
    GatewayError,
    GatewayErrorStatus,
    InvalidCredentialError,
    RateLimitError,
)

logger = logging.getLogger(__name__)

NO_RESEARCH_DATA = "No research data found."

EMPTY_STRUCTURED_MESSAGE = (
    "The model returned an empty response. This can happen if the prompt was "
    "blocked or the model is unavailable."
)
EMPTY_ANALYSIS_MESSAGE = "No analysis received from Gemini."

ClientFactory = Callable[[str, Settings], Any]


def get_http_options(timeout_s: float) -> types.HttpOptions:
    """
    Build HTTP options for backend calls.

    Args:
        timeout_s (float): Request timeout in seconds.

    Returns:
        types.HttpOptions: HTTP options with the timeout in milliseconds.
    """
    return types.HttpOptions(timeout=int(timeout_s * 1000))


def create_gemini_client(api_key: str, settings: Settings) -> genai.Client:
    """
    Creates a Gemini API client.

    Args:
        api_key (str): Resolved Gemini API key.
        settings (Settings): Settings providing the request timeout.

    Returns:
        genai.Client: Configured Gemini client instance.
    """
    return genai.Client(
        api_key=api_key,
        http_options=get_http_options(settings.request_timeout_s),
    )


def classify_backend_error(exc: BaseException) -> GatewayErrorStatus:
    """
    Map a backend exception to a gateway status category.

    Uses the structured HTTP code when the exception carries one and falls
    back to matching status markers in the message text.

    Args:
        exc (BaseException): Exception raised by the backend client.

    Returns:
        GatewayErrorStatus: Status category.
    """
    if isinstance(exc, (TimeoutError, httpx.TimeoutException)):
        return GatewayErrorStatus.TIMEOUT

    code = getattr(exc, "code", None)
    if isinstance(code, int) and not isinstance(code, bool):
        if code in (401, 403):
            return GatewayErrorStatus.UNAUTHORIZED
        if code == 429:
            return GatewayErrorStatus.RATE_LIMITED
        return GatewayErrorStatus.UNKNOWN

    message = str(exc)
    if "401" in message or "403" in message:
        return GatewayErrorStatus.UNAUTHORIZED
    if "429" in message:
        return GatewayErrorStatus.RATE_LIMITED
    return GatewayErrorStatus.UNKNOWN


def to_gateway_error(exc: BaseException) -> GatewayError:
    """Translate a backend exception into the matching GatewayError."""
    status = classify_backend_error(exc)
    message = str(exc) or type(exc).__name__
    if status == GatewayErrorStatus.UNAUTHORIZED:
        return InvalidCredentialError(message)
    if status == GatewayErrorStatus.RATE_LIMITED:
        return RateLimitError(message)
    if status == GatewayErrorStatus.TIMEOUT:
        return GatewayError(f"Backend call timed out: {message}", status=status)
    return GatewayError(message, status=status)


class GeminiGateway:
    """Thin async client over the Gemini content generation API.

    The API key is re-resolved on every call; the underlying client is cached
    per key and rebuilt when the key changes.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        client_factory: ClientFactory = create_gemini_client,
    ) -> None:
        self.settings = settings or Settings()
        self._client_factory = client_factory
        self._client: Any = None
        self._client_key: str | None = None

    @property
    def model(self) -> str:
        return self.settings.gemini_model.value

    def authenticate(self) -> Any:
        """
        Resolve the credential and return a client for it.

        Returns:
            The backend client.

        Raises:
            ConfigurationError: If the API key is not configured.
        """
        api_key = resolve_gemini_api_key()
        if self._client is None or api_key != self._client_key:
            logger.debug("Creating Gemini client for model %s", self.model)
            self._client = self._client_factory(api_key, self.settings)
            self._client_key = api_key
        return self._client

    async def _invoke(
        self,
        label: str,
        prompt: str,
        config: types.GenerateContentConfig,
    ) -> str | None:
        """Run one generate_content call under the per-call timeout."""
        client = self.authenticate()
        contents = [
            types.Content(
                parts=[types.Part.from_text(text=prompt)],
                role="user",
            ),
        ]
        logger.debug("Invoking Gemini (%s) with model %s", label, self.model)
        try:
            response = await asyncio.wait_for(
                client.aio.models.generate_content(
                    model=self.model,
                    contents=contents,
                    config=config,
                ),
                timeout=self.settings.request_timeout_s,
            )
        except Exception as exc:
            error = to_gateway_error(exc)
            logger.error(
                "Gemini call %s failed (%s): %s", label, error.status, exc
            )
            raise error from exc

        if response is None or not hasattr(response, "text") or response.text is None:
            return None
        return response.text

    async def generate_structured(self, prompt: str, schema: dict[str, Any]) -> str:
        """
        Generate JSON output constrained to a response schema.

        Args:
            prompt (str): Instruction text.
            schema (dict[str, Any]): Response schema.

        Returns:
            str: JSON text.

        Raises:
            EmptyResponseError: If the backend returned no text.
        """
        text = await self._invoke(
            "structured",
            prompt,
            types.GenerateContentConfig(
                response_mime_type="application/json",
                response_schema=schema,
            ),
        )
        if not text:
            raise EmptyResponseError(EMPTY_STRUCTURED_MESSAGE)
        return text

    async def generate_with_search(self, prompt: str) -> str:
        """
        Generate free text with Google Search grounding enabled.

        Args:
            prompt (str): Instruction text.

        Returns:
            str: Generated text, or the no-data sentinel when empty.
        """
        text = await self._invoke(
            "search",
            prompt,
            types.GenerateContentConfig(
                tools=[types.Tool(google_search=types.GoogleSearch())],
            ),
        )
        if not text:
            logger.warning("Search-augmented call returned no text")
            return NO_RESEARCH_DATA
        return text

    async def analyze_structured(self, prompt: str, schema: dict[str, Any]) -> str:
        """
        Structured analysis call; same contract as generate_structured.

        Args:
            prompt (str): Instruction text including the data to analyze.
            schema (dict[str, Any]): Response schema.

        Returns:
            str: JSON text.

        Raises:
            EmptyResponseError: If the backend returned no text.
        """
        text = await self._invoke(
            "analysis",
            prompt,
            types.GenerateContentConfig(
                response_mime_type="application/json",
                response_schema=schema,
            ),
        )
        if not text:
            raise EmptyResponseError(EMPTY_ANALYSIS_MESSAGE)
        return text
