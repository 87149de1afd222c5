"""Error kinds raised by the query pipeline."""


class DeepSearchError(Exception):
    """Base exception for deepsearch errors."""

    pass


class InvalidQueryError(DeepSearchError):
    """Raised when a query is empty; rejected before any network call."""

    pass


class NoResultsError(DeepSearchError):
    """Raised when the search succeeded but returned nothing usable."""

    default_message = "No relevant search results found. Please try a different query."

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)


class SearchFailedError(DeepSearchError):
    """Raised on a non-2xx response or transport error from the search call."""

    pass


class CompletionFailedError(DeepSearchError):
    """Raised on a non-2xx response or transport error from the completion call."""

    pass


class SectionClosedError(DeepSearchError):
    """Raised when a Done or Failed section is mutated."""

    pass
