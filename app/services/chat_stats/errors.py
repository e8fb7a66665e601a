"""
Chat Stats Errors — failure taxonomy for the aggregation engine.

Record store failures come in exactly two classes: AccessDenied (the
collection is not provisioned for a project, expected and silent) and
RecordFetchError (network, timeout, malformed rows). Everything the
aggregator does per data source branches on that distinction.
"""

from __future__ import annotations


class ChatStatsError(Exception):
    """Base class for chat stats failures."""


class AccessDenied(ChatStatsError):
    """Record set not provisioned / not readable for this project."""

    def __init__(self, project_id: str, source: str, detail: str = "") -> None:
        self.project_id = project_id
        self.source = source
        self.detail = detail
        super().__init__(f"Access denied to {source} for project {project_id}")


class RecordFetchError(ChatStatsError):
    """Transient or unexpected failure reading from the record store."""

    def __init__(self, project_id: str, source: str, detail: str = "") -> None:
        self.project_id = project_id
        self.source = source
        self.detail = detail
        msg = f"Failed to fetch {source} for project {project_id}"
        super().__init__(f"{msg}: {detail}" if detail else msg)


class BatchFailure(ChatStatsError):
    """Failure outside any single project's scope; the whole refresh aborts."""


class RefreshSuperseded(ChatStatsError):
    """A newer refresh call replaced this one before it completed."""
