"""Error taxonomy for tag transactions and text record decoding."""


class TagError(Exception):
    """Base exception for tag transaction errors."""
    pass


class ConnectionLost(TagError):
    """Raised when the tag left the field or the radio session dropped."""
    pass


class NotWritable(TagError):
    """Raised when the tag reports itself as read-only."""
    pass


class CapacityExceeded(TagError):
    """Raised when a serialized message does not fit on the tag."""

    def __init__(self, required: int, available: int):
        self.required = required
        self.available = available
        super().__init__(
            f"Message too large for this tag ({required}B > {available}B)"
        )


class UnsupportedTag(TagError):
    """Raised when the tag is neither NDEF-capable nor formattable."""
    pass


class MalformedPayload(TagError):
    """Raised when a Text record payload is truncated or badly encoded."""
    pass
