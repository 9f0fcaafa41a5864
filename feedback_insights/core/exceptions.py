"""
Custom Exceptions - Feedback Insights Engine
feedback_insights/core/exceptions.py

Exception classes raised by the analysis pipeline and its collaborators.
"""

from typing import Optional


class AnalysisException(Exception):
    """Base exception for analysis operations."""

    pass


class OracleError(AnalysisException):
    """The text-understanding oracle failed (transport, timeout, status)."""

    def __init__(self, message: str = "Oracle call failed", group: Optional[str] = None):
        self.message = message
        self.group = group
        super().__init__(message)


class InvalidOracleResponseError(OracleError):
    """The oracle answered, but the payload was not usable."""

    def __init__(self, message: str = "Oracle returned a malformed response", group: Optional[str] = None):
        super().__init__(message, group)


class SnapshotStoreError(AnalysisException):
    """Snapshot store read/write failure (excluding not-found)."""

    def __init__(self, message: str = "Snapshot store unavailable"):
        self.message = message
        super().__init__(message)


class FeedbackStoreError(AnalysisException):
    """Feedback store could not be read."""

    def __init__(self, message: str = "Feedback store unavailable"):
        self.message = message
        super().__init__(message)


class AnalysisFailedError(AnalysisException):
    """A run aborted; carries the stage that failed."""

    def __init__(self, stage: str, message: str):
        self.stage = stage
        self.message = message
        super().__init__(f"Analysis failed during {stage}: {message}")
