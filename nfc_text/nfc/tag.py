"""Tag handles and capability descriptors."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, List, Optional, Tuple

import ndef

from .errors import CapacityExceeded, ConnectionLost, NotWritable, UnsupportedTag
from .text_record import TextRecordCodec

if TYPE_CHECKING:
    from .reader import NFCReader

logger = logging.getLogger(__name__)

# Type 2 tag memory layout
CC_PAGE = 3
DATA_START_PAGE = 4
PAGE_SIZE = 4
CC_MAGIC = 0xE1
CC_VERSION = 0x10

TLV_NULL = 0x00
TLV_NDEF = 0x03
TLV_TERMINATOR = 0xFE


class TagKind(Enum):
    """What a tag can do with NDEF data."""

    NDEF = "ndef"
    FORMATTABLE = "formattable"
    UNSUPPORTED = "unsupported"


@dataclass
class TagCapability:
    """Summary of a tag's identity and NDEF support."""
    uid: bytes
    technologies: List[str] = field(default_factory=list)
    ndef_max_size: Optional[int] = None
    is_writable: Optional[bool] = None
    is_formattable: bool = False
    has_ndef: bool = False

    @property
    def kind(self) -> TagKind:
        if self.has_ndef:
            return TagKind.NDEF
        if self.is_formattable:
            return TagKind.FORMATTABLE
        return TagKind.UNSUPPORTED

    @property
    def uid_hex(self) -> str:
        return self.uid.hex().upper()

    def summary(self) -> str:
        """Human readable multi-line description of the tag."""
        lines = [
            f"Tag UID: {self.uid_hex}",
            f"Tech: {', '.join(self.technologies)}",
        ]
        if self.ndef_max_size is not None:
            lines.append(f"NDEF size: {self.ndef_max_size} bytes")
        if self.is_writable is not None:
            lines.append(f"Writable: {str(self.is_writable).lower()}")
        return "\n".join(lines)

    def to_dict(self) -> dict:
        return {
            "uid": self.uid_hex,
            "uid_length": len(self.uid),
            "technologies": list(self.technologies),
            "kind": self.kind.value,
            "ndef_max_size": self.ndef_max_size,
            "writable": self.is_writable,
            "formattable": self.is_formattable,
        }


class TagHandle:
    """
    Low-level session with a single tag in the field.

    Implementations surface radio failures as ConnectionLost. A handle
    serves exactly one transaction; close() may be called any number of
    times.
    """

    uid: bytes = b""
    technologies: Tuple[str, ...] = ()

    def connect(self) -> None:
        raise NotImplementedError

    def capabilities(self) -> TagCapability:
        raise NotImplementedError

    def cached_message(self) -> Optional[List[ndef.Record]]:
        """Message captured at discovery time, if the handle keeps one."""
        return None

    def read_message(self) -> Optional[List[ndef.Record]]:
        raise NotImplementedError

    def write_message(self, records: List[ndef.Record]) -> None:
        raise NotImplementedError

    def format_and_write(self, records: List[ndef.Record]) -> None:
        raise NotImplementedError

    def close(self) -> None:
        raise NotImplementedError


def wrap_tlv(message: bytes) -> bytes:
    """Wrap an encoded NDEF message in an NDEF TLV plus terminator."""
    length = len(message)
    if length < 0xFF:
        header = bytes([TLV_NDEF, length])
    else:
        header = bytes([TLV_NDEF, 0xFF, (length >> 8) & 0xFF, length & 0xFF])
    return header + message + bytes([TLV_TERMINATOR])


def tlv_overhead(data_area_size: int) -> int:
    """Bytes the TLV framing takes out of a tag's data area."""
    return 3 if data_area_size - 3 < 0xFF else 5


class Pn532Tag(TagHandle):
    """
    NTAG21x / MIFARE Ultralight tag accessed through a PN532 reader.

    NDEF support is taken from the capability container in page 3. A tag
    with an all-zero capability container is blank and can be formatted.

    The capability container is one-time programmable, so formatting fixes
    the data area size for good. The default format_size suits a MIFARE
    Ultralight (48 bytes); pass 0x12, 0x3E or 0x6D to format an NTAG213,
    NTAG215 or NTAG216 to its full size.
    """

    technologies = ("NfcA", "MifareUltralight")

    def __init__(
        self,
        reader: "NFCReader",
        uid: bytes,
        timeout: float = 1.0,
        format_size: int = 0x06,
    ):
        """
        Initialize tag handle.

        Args:
            reader: Connected NFC reader
            uid: UID reported when the tag was detected
            timeout: Seconds to wait when re-selecting the tag
            format_size: CC data area size byte written when formatting
                (0x06 = 48 bytes, MIFARE Ultralight)
        """
        self.reader = reader
        self.uid = bytes(uid)
        self.timeout = timeout
        self.format_size = format_size
        self.codec = TextRecordCodec()
        self._cc: Optional[bytes] = None
        self._connected = False

    def connect(self) -> None:
        try:
            uid = self.reader.wait_for_tag(timeout=self.timeout)
        except Exception as e:
            raise ConnectionLost(f"Tag connection failed: {e}")

        if uid is None or bytes(uid) != self.uid:
            raise ConnectionLost("Tag is no longer in range")

        self._cc = self._read_page(CC_PAGE)
        self._connected = True
        logger.debug(f"Connected to tag {self.uid.hex()} (CC={self._cc.hex()})")

    def capabilities(self) -> TagCapability:
        cc = self._require_cc()

        if cc[0] == CC_MAGIC:
            data_area = cc[2] * 8
            return TagCapability(
                uid=self.uid,
                technologies=list(self.technologies) + ["Ndef"],
                ndef_max_size=data_area - tlv_overhead(data_area),
                is_writable=(cc[3] & 0x0F) == 0x00,
                has_ndef=True,
            )

        if cc == bytes(PAGE_SIZE):
            return TagCapability(
                uid=self.uid,
                technologies=list(self.technologies) + ["NdefFormatable"],
                is_formattable=True,
            )

        return TagCapability(uid=self.uid, technologies=list(self.technologies))

    def read_message(self) -> Optional[List[ndef.Record]]:
        cc = self._require_cc()
        if cc[0] != CC_MAGIC:
            return None

        message = self._read_ndef_tlv(cc[2] * 8)
        if not message:
            return None
        return self.codec.parse_message(message)

    def write_message(self, records: List[ndef.Record]) -> None:
        cc = self._require_cc()
        if cc[0] != CC_MAGIC:
            raise UnsupportedTag("Tag is not NDEF formatted")
        if (cc[3] & 0x0F) != 0x00:
            raise NotWritable("Tag is not writable")

        self._write_tlv(self.codec.encode_message(records))

    def format_and_write(self, records: List[ndef.Record]) -> None:
        cc = bytes([CC_MAGIC, CC_VERSION, self.format_size, 0x00])
        message = self.codec.encode_message(records)

        data_area = self.format_size * 8
        available = data_area - tlv_overhead(data_area)
        if len(message) > available:
            raise CapacityExceeded(required=len(message), available=available)

        logger.info(f"Formatting tag {self.uid.hex()} for NDEF")
        self._write_page(CC_PAGE, cc)
        self._cc = cc
        self._write_tlv(message)

    def close(self) -> None:
        if self._connected:
            logger.debug(f"Closed tag {self.uid.hex()}")
        self._connected = False
        self._cc = None

    def _require_cc(self) -> bytes:
        if not self._connected or self._cc is None:
            raise ConnectionLost("Tag is not connected")
        return self._cc

    def _read_page(self, page: int) -> bytes:
        try:
            return bytes(self.reader.read_block(page))
        except Exception as e:
            raise ConnectionLost(f"Failed to read page {page}: {e}")

    def _write_page(self, page: int, block: bytes) -> None:
        try:
            self.reader.write_block(page, block)
        except Exception as e:
            raise ConnectionLost(f"Failed to write page {page}: {e}")

    def _read_ndef_tlv(self, data_area: int) -> Optional[bytes]:
        max_page = DATA_START_PAGE + (data_area + PAGE_SIZE - 1) // PAGE_SIZE
        data = bytearray()
        page = DATA_START_PAGE

        def need(count: int) -> bool:
            nonlocal page
            while len(data) < count and page < max_page:
                data.extend(self._read_page(page))
                page += 1
            return len(data) >= count

        i = 0
        while need(i + 1):
            tlv_type = data[i]
            if tlv_type == TLV_NULL:
                i += 1
                continue
            if tlv_type == TLV_TERMINATOR or not need(i + 2):
                return None

            length = data[i + 1]
            header = 2
            if length == 0xFF:
                if not need(i + 4):
                    return None
                length = (data[i + 2] << 8) | data[i + 3]
                header = 4

            if tlv_type == TLV_NDEF:
                start = i + header
                if not need(start + length):
                    return None
                return bytes(data[start:start + length])

            i += header + length

        return None

    def _write_tlv(self, message: bytes) -> None:
        tlv = bytearray(wrap_tlv(message))
        while len(tlv) % PAGE_SIZE:
            tlv.append(TLV_NULL)

        page = DATA_START_PAGE
        for i in range(0, len(tlv), PAGE_SIZE):
            self._write_page(page, bytes(tlv[i:i + PAGE_SIZE]))
            page += 1

        logger.debug(f"Wrote {len(message)} byte NDEF message to tag {self.uid.hex()}")
