from typing import Optional


class SdiffError(Exception):
    """Base class for every error raised by sdiff."""


class ParseError(SdiffError, ValueError):
    """A serialized replacement instruction could not be decoded."""


class DocumentIOError(SdiffError, OSError):
    """
    Reading or writing a document failed.
    Keeps the offending path so callers can report it.
    """

    def __init__(self, path: str, message: str):
        super().__init__(f"{message}: {path}")
        self.path = path


class ReplacementError(SdiffError):
    """
    Raised when a batch of instructions has to be aborted.
    `key` names the instruction that failed; the cause is chained.
    """

    def __init__(self, key: str, reason: Optional[Exception] = None):
        detail = str(reason) if reason is not None else "unknown error"
        super().__init__(f"Failed to apply replacement '{key}': {detail}")
        self.key = key
