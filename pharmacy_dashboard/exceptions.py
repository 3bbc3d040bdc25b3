"""Domain exceptions for the dashboard aggregation engine."""


class DashboardError(Exception):
    """Base exception for all dashboard errors."""
    pass


class CollaboratorFailure(DashboardError):
    """An external query failed, so the whole aggregation cycle failed.

    `query` names the failing query; the original error is chained as
    ``__cause__``.
    """

    def __init__(self, query: str, message: str | None = None):
        self.query = query
        super().__init__(message or f"Unable to fetch {query.replace('_', ' ')}")


class SourceRequestError(DashboardError):
    """A collaborator answered with an error status."""

    def __init__(self, url: str, status: int, detail: str | None = None):
        self.url = url
        self.status = status
        self.detail = detail
        super().__init__(f"{url} returned HTTP {status}" + (f": {detail}" if detail else ""))
