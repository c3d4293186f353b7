"""Custom exception hierarchy for the patchwork service.

All application exceptions inherit from :class:`PatchworkError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "lastfm", "listenbrainz", "redis") caused the failure.

The hierarchy is organized by pipeline stage:

    PatchworkError  (base -- catch-all for any patchwork error)
    +-- CoverResolutionError       (user / statistics / cover lookup)
    |   +-- UserNotFoundError      (provider does not know the user)
    |   +-- NoListeningDataError   (user has no qualifying statistics)
    |   +-- NoCoversFoundError     (statistics exist but no cover survived)
    +-- ProviderUnavailableError   (upstream HTTP failure / malformed payload)
    +-- InsufficientCoverArtError  (every cover download failed)
    +-- CompositionError           (canvas assembly or JPEG encoding failed)
    +-- ConfigurationError         (startup / missing or invalid config)

Route handlers catch :class:`PatchworkError` as a whole to produce the
plain-text 500 response; tests and the CLI can be more specific.
"""


class PatchworkError(Exception):
    """Base exception for all patchwork errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  ``__str__`` prefixes the provider name in brackets, e.g.
    ``[lastfm] User does not exist``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Cover resolution errors
# ---------------------------------------------------------------------------

class CoverResolutionError(PatchworkError):
    """Raised when a listener's top covers cannot be resolved."""

    def __init__(
        self,
        message: str = "Cover resolution failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class UserNotFoundError(CoverResolutionError):
    """Raised when the statistics provider does not know the user."""

    def __init__(
        self,
        message: str = "User does not exist",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class NoListeningDataError(CoverResolutionError):
    """Raised when the user exists but has no top items for the period."""

    def __init__(
        self,
        message: str = "User does not have any listening statistics",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class NoCoversFoundError(CoverResolutionError):
    """Raised when no top item yields a usable cover URL."""

    def __init__(
        self,
        message: str = "No covers found",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# External service errors
# ---------------------------------------------------------------------------

class ProviderUnavailableError(PatchworkError):
    """Raised when a statistics provider is unreachable or answers garbage."""

    def __init__(
        self,
        message: str = "External service is unavailable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Generation errors
# ---------------------------------------------------------------------------

class InsufficientCoverArtError(PatchworkError):
    """Raised when not a single cover image could be downloaded."""

    def __init__(
        self,
        message: str = "Failed to download any album covers",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class CompositionError(PatchworkError):
    """Raised when the patchwork canvas cannot be assembled or encoded."""

    def __init__(
        self,
        message: str = "Failed to create patchwork",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ConfigurationError(PatchworkError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
