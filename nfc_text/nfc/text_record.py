"""NDEF Well-Known Text record encoding and decoding."""

import codecs
import locale
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional

import ndef

from .errors import MalformedPayload

logger = logging.getLogger(__name__)

TEXT_RECORD_TYPE = "urn:nfc:wkt:T"
DEFAULT_LANGUAGE = "en"

STATUS_UTF16 = 0x80
LANGUAGE_LENGTH_MASK = 0x3F


class TextEncoding(Enum):
    """Text encoding selected by bit 7 of the status byte."""

    UTF8 = "UTF-8"
    UTF16 = "UTF-16"


@dataclass
class TextRecord:
    """Decoded content of a Well-Known Text record."""
    language: str
    text: str
    encoding: TextEncoding = TextEncoding.UTF8


def default_language() -> str:
    """Return the language part of the process locale, or 'en'."""
    try:
        name = locale.getlocale()[0] or ""
    except ValueError:
        name = ""
    language = name.split("_")[0].split("-")[0]
    if language in ("C", "POSIX"):
        language = ""
    return normalize_language(language)


def normalize_language(language: Optional[str]) -> str:
    """
    Normalize a language code for writing.

    Args:
        language: Language code, blank values fall back to 'en'

    Returns:
        Lowercase language code

    Raises:
        ValueError: If the code is not ASCII or longer than 63 bytes
    """
    language = (language or "").strip() or DEFAULT_LANGUAGE
    try:
        encoded = language.encode("ascii")
    except UnicodeEncodeError:
        raise ValueError(f"Language code must be ASCII: {language!r}")
    if len(encoded) > LANGUAGE_LENGTH_MASK:
        raise ValueError(
            f"Language code must be at most {LANGUAGE_LENGTH_MASK} bytes, got {len(encoded)}"
        )
    return language.lower()


class TextRecordCodec:
    """
    Codec for NFC Forum Text records (RTD_TEXT).

    The writer always emits UTF-8 text. The reader accepts UTF-8 and
    UTF-16 payloads so tags written by other tools can be displayed.
    """

    def encode(self, text: str, language: Optional[str] = None) -> bytes:
        """
        Encode text into a Text record payload.

        Args:
            text: Text to store, may be empty
            language: Language code (default: process locale, then 'en')

        Returns:
            Payload bytes: status byte, language code, UTF-8 text
        """
        if language is None:
            language = default_language()
        lang_bytes = normalize_language(language).encode("ascii")
        text_bytes = text.encode("utf-8")

        # bit 7 clear: UTF-8
        payload = bytes([len(lang_bytes)]) + lang_bytes + text_bytes
        logger.debug(f"Encoded text record payload ({len(payload)} bytes)")
        return payload

    def decode(self, payload: bytes) -> TextRecord:
        """
        Decode a Text record payload.

        Args:
            payload: Raw record payload

        Returns:
            Decoded TextRecord

        Raises:
            MalformedPayload: If the payload is truncated or the text is
                not valid for the declared encoding
        """
        payload = bytes(payload)
        if not payload:
            return TextRecord(language="", text="")

        status = payload[0]
        encoding = TextEncoding.UTF16 if status & STATUS_UTF16 else TextEncoding.UTF8
        lang_length = status & LANGUAGE_LENGTH_MASK
        text_start = 1 + lang_length

        if text_start > len(payload):
            raise MalformedPayload(
                f"Language code length {lang_length} exceeds payload of {len(payload)} bytes"
            )

        language = payload[1:text_start].decode("latin-1")
        text_bytes = payload[text_start:]

        try:
            if encoding is TextEncoding.UTF16:
                text = self._decode_utf16(text_bytes)
            else:
                text = text_bytes.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedPayload(f"Invalid {encoding.value} text: {e}")

        return TextRecord(language=language, text=text, encoding=encoding)

    def decode_text(self, payload: bytes) -> str:
        """Decode a Text record payload and return only the text."""
        return self.decode(payload).text

    def _decode_utf16(self, data: bytes) -> str:
        # Without a byte order mark the text is big-endian.
        if data.startswith((codecs.BOM_UTF16_BE, codecs.BOM_UTF16_LE)):
            return data.decode("utf-16")
        return data.decode("utf-16-be")

    def create_record(self, text: str, language: Optional[str] = None) -> ndef.Record:
        """
        Create a Well-Known Text record.

        Args:
            text: Text to store
            language: Language code

        Returns:
            ndeflib Record with an empty ID
        """
        return ndef.Record(TEXT_RECORD_TYPE, "", self.encode(text, language))

    def create_message(self, text: str, language: Optional[str] = None) -> List[ndef.Record]:
        """Create the single-record message written to tags."""
        return [self.create_record(text, language)]

    def encode_message(self, records: Iterable[ndef.Record]) -> bytes:
        """
        Serialize an NDEF message.

        Args:
            records: Records in message order

        Returns:
            Encoded NDEF message as bytes
        """
        return b"".join(ndef.message_encoder(records))

    def parse_message(self, data: bytes) -> List[ndef.Record]:
        """
        Parse an NDEF message into raw records.

        Records are kept undecoded so their payload bytes stay exactly as
        stored on the tag.

        Args:
            data: Encoded NDEF message

        Returns:
            List of records in message order

        Raises:
            MalformedPayload: If the message framing is invalid
        """
        try:
            records = list(ndef.message_decoder(data, known_types={}))
        except Exception as e:
            raise MalformedPayload(f"Invalid NDEF message: {e}")

        logger.debug(f"Parsed {len(records)} NDEF record(s)")
        return records

    @staticmethod
    def is_text_record(record: ndef.Record) -> bool:
        """Return True for records with TNF Well-Known and type 'T'."""
        return record.type == TEXT_RECORD_TYPE
