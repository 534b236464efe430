"""Exception types shared by the synchronization core."""

from __future__ import annotations


class PulseError(Exception):
    """Base class for refusals and failures surfaced to the host or participants."""


class SessionNotFoundError(PulseError):
    """The referenced session (or question) vanished from the store."""


class SessionExpiredError(PulseError):
    """The session is past its hard lifetime; every mutation is rejected."""


class WriteFailureError(PulseError):
    """A write did not reach the store."""


class StaleReferenceError(PulseError):
    """Local state referenced an id that is no longer present."""


class InvalidTransitionError(PulseError):
    """The requested lifecycle transition is not allowed from the current state."""


class SubmissionClosedError(PulseError):
    """Answers are not being accepted for the live question."""


class DuplicateResponseError(PulseError):
    """This device already answered the live question."""
