"""Error types shared by the indexing and query pipelines."""


class VaultError(Exception):
    """Base class for vaultMCP errors."""

    pass


class ConfigurationError(VaultError):
    """Raised when provider credentials or settings are missing."""

    pass


class ProviderError(VaultError):
    """Raised on transport failures or error responses from a provider API."""

    pass


class RateLimited(ProviderError):
    """Raised when a provider throttles requests.

    Callers should back off before retrying. ``retry_after`` is the delay
    suggested by the provider, in seconds, when it sent one.
    """

    def __init__(self, message: str, retry_after: float | None = None):
        super().__init__(message)
        self.retry_after = retry_after


class InvalidInput(ProviderError):
    """Raised when a text exceeds the provider's maximum input size."""

    pass


class StoreError(VaultError):
    """Raised when the vector store is unavailable or rejects a write."""

    pass


class IndexingInProgress(VaultError):
    """Raised when a reindex is requested while another one is running."""

    pass
