"""Exception hierarchy for the discovery engine.

Every application exception inherits from :class:`DiscoveryError`, which
carries an optional ``provider_name`` so handlers can tell which backing
service (e.g. ``"wpgraphql"``) produced the failure.

    DiscoveryError  (base)
    +-- ContentFetchError       (remote content-query API failed)
    +-- UnknownCollectionError  (request named a resource kind we don't serve)
    +-- ConfigurationError      (startup / missing config)

Pool-fetch failures are raised, never converted into empty pools.  The route
layer (``src.api.middleware``) is where they get turned into responses.
"""


class DiscoveryError(Exception):
    """Base exception for all discovery-engine errors.

    ``__str__`` prefixes the provider name in brackets for log scanning,
    e.g. ``[wpgraphql] HTTP 502 Bad Gateway``.
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


class ContentFetchError(DiscoveryError):
    """Raised when a content pool cannot be fetched from the remote API.

    Covers transport errors, non-2xx statuses and GraphQL ``errors``
    payloads.  Not retried by the aggregator.
    """

    def __init__(
        self,
        message: str = "Content pool fetch failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class UnknownCollectionError(DiscoveryError):
    """Raised when a resource kind has no registered collection."""

    def __init__(
        self,
        message: str = "Unknown resource kind",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ConfigurationError(DiscoveryError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
