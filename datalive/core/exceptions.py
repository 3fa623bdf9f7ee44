"""
Application exception hierarchy.

Every exception carries a human readable ``message`` and a ``details`` dict.
The API layer maps each class to an HTTP status and a stable ``type`` string.
"""

from typing import Any


class DataLiveException(Exception):
    """Base class for all application errors."""

    error_type = "application_error"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ValidationError(DataLiveException):
    """Missing or invalid input at the API surface."""

    error_type = "validation_error"


class AuthenticationError(DataLiveException):
    error_type = "authentication_error"


class AuthorizationError(DataLiveException):
    error_type = "authorization_error"


class ResourceNotFoundError(DataLiveException):
    """Referenced entity is absent or not owned by the caller."""

    error_type = "not_found_error"

    def __init__(self, resource: str, identifier: Any = None, details: dict[str, Any] | None = None):
        message = f"{resource} not found" if identifier is None else f"{resource} {identifier} not found"
        super().__init__(message, details)
        self.resource = resource
        self.identifier = identifier


NotFoundError = ResourceNotFoundError


class ConflictError(DataLiveException):
    error_type = "conflict_error"


class ExternalServiceError(DataLiveException):
    error_type = "external_service_error"


class ProviderError(ExternalServiceError):
    """An LLM provider call failed (transport, vendor error, timeout)."""

    error_type = "provider_error"

    def __init__(
        self,
        provider_message: str,
        provider: str | None = None,
        model: str | None = None,
    ):
        label = f"{provider} provider error" if provider else "Provider error"
        super().__init__(
            f"{label}: {provider_message}",
            {"provider": provider, "model": model},
        )
        self.provider = provider
        self.model = model
        self.provider_message = provider_message


class ProviderNotConfiguredError(ProviderError):
    """No adapter is registered for the requested provider."""

    def __init__(self, provider: str):
        super().__init__("no API key configured", provider=provider)


class ParseError(DataLiveException):
    """Model output was not valid JSON for the expected schema."""

    error_type = "parse_error"

    def __init__(self, message: str, raw_text: str = ""):
        super().__init__(message, {"raw_excerpt": raw_text[:500]})
        self.raw_text = raw_text


class TransportError(DataLiveException):
    """Outbound endpoint call failed at the network layer."""

    error_type = "transport_error"


class ExtractionError(DataLiveException):
    """Text could not be extracted from a PDF or URL."""

    error_type = "extraction_error"
