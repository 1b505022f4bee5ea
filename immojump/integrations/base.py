"""
Base classes for Immojump integrations.

This module defines the foundational abstractions shared by the API client
layer: the error taxonomy, the immutable request/response descriptors and
the HTTP executor.

Design Principles:
1. Async-first: All I/O operations are async
2. Single-shot: Exactly one attempt per call, the caller decides on retries
3. Observable: Logging hooks for requests and responses
4. Testable: The httpx client can be injected

Error Taxonomy:
    - ConfigError: missing credential or required configuration (fatal)
    - ValidationError: malformed parameters, invalid JSON text fields
    - NetworkError: timeouts and transport failures
    - ApiError: non-2xx responses or undecodable JSON bodies
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import httpx

logger = logging.getLogger(__name__)


# =============================================================================
# Exceptions
# =============================================================================


class IntegrationError(Exception):
    """Base exception for integration errors."""

    def __init__(
        self,
        message: str,
        integration: str = "immojump",
        *,
        status_code: int | None = None,
        response_body: Any = None,
        retryable: bool = False,
    ):
        super().__init__(message)
        self.integration = integration
        self.status_code = status_code
        self.response_body = response_body
        self.retryable = retryable

    @property
    def message(self) -> str:
        return self.args[0]

    def __str__(self) -> str:
        parts = [f"[{self.integration}] {self.args[0]}"]
        if self.status_code:
            parts.append(f"(status={self.status_code})")
        return " ".join(parts)


class ConfigError(IntegrationError):
    """Raised when a required credential or configuration value is missing."""

    def __init__(self, message: str, integration: str = "immojump", **kwargs):
        super().__init__(message, integration, retryable=False, **kwargs)


class ValidationError(IntegrationError):
    """Raised when request parameters are missing or malformed."""

    def __init__(
        self,
        message: str,
        integration: str = "immojump",
        *,
        field_name: str | None = None,
        **kwargs,
    ):
        super().__init__(message, integration, retryable=False, **kwargs)
        self.field_name = field_name


class NetworkError(IntegrationError):
    """Raised on connection failures and timeouts."""

    def __init__(self, message: str, integration: str = "immojump", **kwargs):
        super().__init__(message, integration, retryable=True, **kwargs)


class ApiError(IntegrationError):
    """Raised when the API answers with an error or an unreadable body."""


class AuthenticationError(ApiError):
    """Raised when authentication fails (401/403)."""

    def __init__(self, message: str, integration: str = "immojump", **kwargs):
        super().__init__(message, integration, retryable=False, **kwargs)


class RateLimitError(ApiError):
    """Raised when rate limit is exceeded (429)."""

    def __init__(
        self,
        message: str,
        integration: str = "immojump",
        *,
        retry_after: float | None = None,
        **kwargs,
    ):
        super().__init__(message, integration, retryable=True, **kwargs)
        self.retry_after = retry_after


class NotFoundError(ApiError):
    """Raised when a resource is not found (404)."""

    def __init__(self, message: str, integration: str = "immojump", **kwargs):
        super().__init__(message, integration, retryable=False, **kwargs)


# =============================================================================
# Configuration
# =============================================================================


@dataclass(frozen=True, slots=True)
class IntegrationConfig:
    """Configuration for an integration client."""

    # Connection
    base_url: str = ""
    timeout: float = 30.0

    # Observability
    log_requests: bool = False
    log_responses: bool = False


# =============================================================================
# Request / Response Types
# =============================================================================


@dataclass(frozen=True, slots=True)
class RequestSpec:
    """A fully resolved HTTP request, built fresh per call."""

    method: str
    path: str
    query: dict[str, str] = field(default_factory=dict)
    body: Any = None
    headers: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ApiResult:
    """Successful API response."""

    status_code: int
    body: Any = None


# =============================================================================
# Base Client
# =============================================================================


class IntegrationClient(ABC):
    """
    Abstract base class for integration clients.

    Provides common functionality:
    - HTTP client management
    - JSON encoding and decoding
    - Error classification into the IntegrationError hierarchy
    - Request/response logging

    Requests are executed exactly once. Nothing here retries, the
    ``retryable`` flag on raised errors lets the caller decide.

    Subclasses must implement:
    - name: Integration identifier
    """

    def __init__(
        self,
        config: IntegrationConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize the integration client.

        Args:
            config: Integration configuration
            http_client: Optional pre-built client (tests, shared pools)
        """
        self.config = config
        self._client: httpx.AsyncClient | None = http_client
        self._owns_client = http_client is None

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique name for this integration."""
        ...

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.config.base_url,
                timeout=self.config.timeout,
                headers={
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                },
            )
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._client and self._owns_client and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def execute(self, spec: RequestSpec) -> ApiResult:
        """
        Execute a single HTTP request.

        Args:
            spec: The request descriptor

        Returns:
            ApiResult with the decoded JSON body

        Raises:
            NetworkError: On timeouts and transport failures
            ApiError: On non-2xx responses or non-JSON bodies
        """
        client = await self._get_client()

        if self.config.log_requests:
            logger.debug(
                f"[{self.name}] {spec.method} {spec.path} "
                f"params={spec.query} body={spec.body}"
            )

        try:
            response = await client.request(
                method=spec.method,
                url=spec.path,
                params=spec.query or None,
                json=spec.body,
                headers=spec.headers,
            )
        except httpx.TimeoutException as e:
            raise NetworkError(f"Request timeout: {e}", self.name) from e
        except httpx.TransportError as e:
            raise NetworkError(f"Network error: {e}", self.name) from e

        if self.config.log_responses:
            logger.debug(
                f"[{self.name}] Response: status={response.status_code} "
                f"body={response.text[:500] if response.text else 'empty'}"
            )

        self._check_response(response)

        return ApiResult(
            status_code=response.status_code,
            body=self._decode_body(response),
        )

    def _decode_body(self, response: httpx.Response) -> Any:
        """Decode a successful response body as JSON."""
        text = response.text
        if not text or not text.strip():
            return None
        try:
            return json.loads(text)
        except ValueError as e:
            raise ApiError(
                "Response is not valid JSON",
                self.name,
                status_code=response.status_code,
                response_body=text,
            ) from e

    @staticmethod
    def _error_body(response: httpx.Response) -> Any:
        """Parsed JSON body of an error response, or the raw text."""
        text = response.text
        try:
            return json.loads(text) if text else None
        except ValueError:
            return text

    def _check_response(self, response: httpx.Response) -> None:
        """
        Check response for errors and raise appropriate exceptions.

        Args:
            response: HTTP response to check

        Raises:
            AuthenticationError: For 401/403
            RateLimitError: For 429
            NotFoundError: For 404
            ApiError: For other errors
        """
        if response.is_success:
            return

        status = response.status_code
        text = response.text
        body = self._error_body(response)

        if status == 401 or status == 403:
            raise AuthenticationError(
                f"Authentication failed: {text}",
                self.name,
                status_code=status,
                response_body=body,
            )

        if status == 429:
            retry_after = response.headers.get("Retry-After")
            try:
                retry_seconds = float(retry_after) if retry_after else None
            except ValueError:
                retry_seconds = None
            raise RateLimitError(
                "Rate limit exceeded",
                self.name,
                status_code=status,
                response_body=body,
                retry_after=retry_seconds,
            )

        if status == 404:
            raise NotFoundError(
                f"Resource not found: {text}",
                self.name,
                status_code=status,
                response_body=body,
            )

        raise ApiError(
            f"Request failed: {text}",
            self.name,
            status_code=status,
            response_body=body,
            retryable=status >= 500,
        )

    async def health_check(self) -> bool:
        """
        Check if the integration is healthy/reachable.

        Returns:
            True if healthy, False otherwise
        """
        return True

    async def __aenter__(self) -> "IntegrationClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()
