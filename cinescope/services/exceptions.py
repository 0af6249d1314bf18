"""Domain-specific exceptions."""


class ServiceError(Exception):
    pass


class ConfigurationError(ServiceError):
    """A required setting was missing when a service first needed it."""


class CatalogError(ServiceError):
    pass


class CatalogTransportError(CatalogError):
    """The catalog request could not be completed at the network layer."""


class CatalogRequestError(CatalogError):
    """The catalog answered with a non-success status."""

    def __init__(self, message: str, *, status_code: int | None = None, reason: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.reason = reason


class CatalogParseError(CatalogError):
    """The catalog response body did not have the expected shape."""


class StoreOperationError(ServiceError):
    """A telemetry store query, create or update failed."""


class StoreDecodeError(StoreOperationError):
    """A telemetry document did not match the search record schema."""


class FetchError(ServiceError):
    """Generic failure descriptor used by the fetch controller."""
