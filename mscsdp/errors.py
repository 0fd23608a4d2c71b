"""Exception hierarchy raised by the package."""


class MediaSoupClientError(RuntimeError):
    """Base error for every failure reported by the package."""

    def __init__(self, description: str = "") -> None:
        super().__init__(description)
        self.description = description

    def __str__(self) -> str:
        return self.description


class MediaSoupClientTypeError(MediaSoupClientError):
    """A value has the wrong type or shape."""


class MediaSoupClientUnsupportedError(MediaSoupClientError):
    """The requested operation or media is not supported."""


class MediaSoupClientInvalidStateError(MediaSoupClientError):
    """The operation is not allowed in the current state."""