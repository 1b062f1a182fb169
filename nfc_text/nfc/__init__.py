"""NFC module for PN532 HAT communication and NDEF text records."""

from .errors import (
    TagError,
    ConnectionLost,
    NotWritable,
    CapacityExceeded,
    UnsupportedTag,
    MalformedPayload,
)
from .text_record import TextRecordCodec, TextRecord, TextEncoding
from .tag import TagHandle, TagCapability, TagKind, Pn532Tag
from .reader import NFCReader
from .transaction import (
    TagTransaction,
    TransactionState,
    ReadResult,
    ReadStatus,
    WriteResult,
    write_text,
    read_text,
    describe_tag,
)

__all__ = [
    "TagError",
    "ConnectionLost",
    "NotWritable",
    "CapacityExceeded",
    "UnsupportedTag",
    "MalformedPayload",
    "TextRecordCodec",
    "TextRecord",
    "TextEncoding",
    "TagHandle",
    "TagCapability",
    "TagKind",
    "Pn532Tag",
    "NFCReader",
    "TagTransaction",
    "TransactionState",
    "ReadResult",
    "ReadStatus",
    "WriteResult",
    "write_text",
    "read_text",
    "describe_tag",
]
