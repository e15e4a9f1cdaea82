"""Exceptions raised by the narrative extraction package."""


class DocumentUnavailableError(RuntimeError):
    """The document could not be opened or read at all."""

    def __init__(self, path: str, reason: str = ""):
        self.path = path
        self.reason = reason
        msg = f"Document '{path}' is unavailable"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)
