"""Abstract base class for AI provider adapters.

Defines the ``Provider`` interface every vendor adapter implements.  An
adapter only describes the vendor's wire format: ``build_request()``
produces the endpoint, auth headers, and JSON body for a user message,
and ``parse_response()`` pulls the generated text out of a decoded
response body.  The shared ``complete()`` method performs the single
HTTP POST and turns every failure into a ``ProviderError``.

Providers are async context managers owning an ``httpx.AsyncClient``.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, ClassVar

import httpx

from lms_assistant.config import Config
from lms_assistant.errors import ProviderError
from lms_assistant.types import ProviderId

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderRequest:
    """Everything needed to issue one provider call.

    Attributes:
        url: Endpoint to POST to.
        headers: Provider-specific headers, including authorization.
        payload: JSON request body.
    """

    url: str
    headers: dict[str, str]
    payload: dict[str, Any]


@dataclass(frozen=True)
class GenerationSettings:
    """Generation parameters for one provider.

    Attributes:
        model: Vendor-native model identifier.
        max_tokens: Upper bound on generated tokens.
        temperature: Sampling temperature.
        system_prompt: Instructions sent ahead of the user's message.
            Empty string to send none.
    """

    model: str
    max_tokens: int
    temperature: float
    system_prompt: str = ""

    @classmethod
    def from_config(cls, config: Config, provider: ProviderId) -> GenerationSettings:
        return cls(
            model=config.model_for(provider),
            max_tokens=config.max_tokens,
            temperature=config.temperature,
            system_prompt=config.system_prompt,
        )


class Provider(ABC):
    """Base class for all provider adapters.

    Subclasses set ``provider_id`` and implement ``build_request()`` and
    ``parse_response()``.  ``parse_response()`` may index freely into the
    body: ``KeyError``, ``IndexError``, and ``TypeError`` are reported as
    a malformed response.

    Args:
        api_key: Provider API key.
        settings: Model and generation parameters.
        timeout: Request timeout in seconds.  None disables it.
        transport: Optional httpx transport, used to stub the network.

    Raises:
        ValueError: If ``api_key`` is empty.
    """

    provider_id: ClassVar[ProviderId]

    def __init__(
        self,
        api_key: str,
        settings: GenerationSettings,
        *,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not api_key:
            raise ValueError(f"{self.provider_id.display_name} API key is required.")
        self._api_key = api_key
        self._settings = settings
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def settings(self) -> GenerationSettings:
        return self._settings

    @abstractmethod
    def build_request(self, message: str) -> ProviderRequest:
        """Build the provider call for a single user message.

        Args:
            message: The user's message text.

        Returns:
            ProviderRequest with endpoint, headers, and JSON body.
        """
        ...

    @abstractmethod
    def parse_response(self, data: Any) -> str:
        """Extract the generated text from a decoded response body.

        Args:
            data: Parsed JSON response body.

        Returns:
            The generated text.
        """
        ...

    async def __aenter__(self) -> Provider:
        """Open the underlying HTTP connection pool."""
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(self._timeout),
            headers={"Content-Type": "application/json"},
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *exc: Any) -> None:
        """Close the underlying HTTP connection pool."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def complete(self, message: str) -> str:
        """Send one message and return the provider's reply.

        Issues a single POST with no retry.

        Args:
            message: The user's message text.

        Returns:
            The generated text, stripped of surrounding whitespace.

        Raises:
            ProviderError: On transport failure, a non-200 status, a
                non-JSON body, or a body without the expected text.
            RuntimeError: If used outside the async context manager.
        """
        if not self._client:
            raise RuntimeError("Client not initialized. Use 'async with' context manager.")

        request = self.build_request(message)
        try:
            resp = await self._client.post(
                request.url, headers=request.headers, json=request.payload
            )
        except httpx.TimeoutException as exc:
            raise ProviderError(
                self.provider_id, f"Request timed out after {self._timeout}s"
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderError(self.provider_id, f"Request failed: {exc}") from exc

        if resp.status_code != 200:
            detail = _extract_error(resp)
            logger.warning(
                "%s returned HTTP %d: %s",
                self.provider_id.display_name,
                resp.status_code,
                detail,
            )
            raise ProviderError(self.provider_id, detail, status_code=resp.status_code)

        try:
            data = resp.json()
        except ValueError as exc:
            raise ProviderError(self.provider_id, "Response body is not valid JSON") from exc

        try:
            text = self.parse_response(data)
        except (KeyError, IndexError, TypeError) as exc:
            raise ProviderError(
                self.provider_id, f"Failed to parse response: {_truncate(str(data), 200)}"
            ) from exc

        return text.strip()


def _extract_error(resp: httpx.Response) -> str:
    """Extract error detail from a non-200 response.

    Vendors report errors as ``{"error": {"message": ...}}``.  Falls back
    to the status code and raw body when that shape is missing.

    Args:
        resp: The httpx response object.

    Returns:
        Human-readable error description.
    """
    try:
        body = resp.json()
    except ValueError:
        body = None

    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error

    text = resp.text.strip() if isinstance(resp.text, str) else ""
    if text:
        return f"HTTP {resp.status_code}: {_truncate(text, 500)}"
    return f"HTTP {resp.status_code}"


def _truncate(text: str, max_len: int) -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."
