# apps/common/exceptions.py


class ContactScoutError(Exception):
    """Base class for errors raised by the domain pipeline."""


class PoolExhausted(ContactScoutError):
    """No browser context became available before the acquire timeout."""


class SubmissionError(ContactScoutError):
    """
    A submission attempt failed.

    `transient` marks failures worth retrying (timeouts, dropped
    connections, crashed pages). Structural failures such as a missing
    submit button are never transient.
    """

    def __init__(self, message: str, transient: bool = False):
        super().__init__(message)
        self.transient = transient
