"""Write/read transactions against a single tag handle."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, TypeVar

from .errors import CapacityExceeded, MalformedPayload, NotWritable, UnsupportedTag
from .tag import TagCapability, TagHandle, TagKind
from .text_record import TextRecord, TextRecordCodec, default_language, normalize_language

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TransactionState(Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    VERIFYING = "verifying"
    WRITING = "writing"
    READING = "reading"
    CLOSING = "closing"
    DONE = "done"
    FAILED = "failed"


class ReadStatus(Enum):
    OK = "ok"
    NO_NDEF_MESSAGE = "no_ndef_message"


@dataclass
class WriteResult:
    """Outcome of a successful write."""
    uid: bytes
    text: str
    language: str
    bytes_written: int
    formatted: bool = False


@dataclass
class ReadResult:
    """Outcome of a read; NO_NDEF_MESSAGE is a normal empty result."""
    uid: bytes
    status: ReadStatus
    records: List[TextRecord] = field(default_factory=list)
    skipped: int = 0

    @property
    def text(self) -> Optional[str]:
        if not self.records:
            return None
        return "\n".join(record.text for record in self.records)


class TagTransaction:
    """
    One connect/operate/close sequence against a tag.

    A transaction serves a single operation and is then discarded. The tag
    connection is closed on every exit path, failures included, and the
    transaction never retries.
    """

    def __init__(self, tag: TagHandle, codec: Optional[TextRecordCodec] = None):
        self.tag = tag
        self.codec = codec or TextRecordCodec()
        self.state = TransactionState.IDLE

    def _enter(self, state: TransactionState) -> None:
        logger.debug(f"Transaction {self.state.value} -> {state.value}")
        self.state = state

    def _run(self, operation: Callable[[], T]) -> T:
        succeeded = False
        try:
            self._enter(TransactionState.CONNECTING)
            self.tag.connect()
            self._enter(TransactionState.VERIFYING)
            result = operation()
            succeeded = True
            return result
        except Exception as e:
            logger.warning(f"Tag operation failed in state {self.state.value}: {e}")
            self._enter(TransactionState.FAILED)
            raise
        finally:
            self._enter(TransactionState.CLOSING)
            try:
                self.tag.close()
            except Exception as e:
                logger.warning(f"Failed to close tag connection: {e}")
            self._enter(TransactionState.DONE if succeeded else TransactionState.FAILED)

    def write(self, text: str, language: Optional[str] = None) -> WriteResult:
        """
        Write text to the tag as a single Well-Known Text record.

        The tag is never locked and stays rewritable.

        Args:
            text: Text to write
            language: Language code (default: process locale, then 'en')

        Returns:
            WriteResult describing the write

        Raises:
            ConnectionLost: If the tag left the field
            NotWritable: If the tag is read-only
            CapacityExceeded: If the message is larger than the tag
            UnsupportedTag: If the tag supports neither NDEF nor formatting
        """
        if language is None:
            language = default_language()
        language = normalize_language(language)
        records = self.codec.create_message(text, language)
        size = len(self.codec.encode_message(records))

        def operation() -> WriteResult:
            capability = self.tag.capabilities()
            kind = capability.kind

            if kind is TagKind.NDEF:
                if capability.is_writable is False:
                    raise NotWritable("Tag is not writable")

                available = capability.ndef_max_size
                if available is not None and size > available:
                    raise CapacityExceeded(required=size, available=available)

                self._enter(TransactionState.WRITING)
                self.tag.write_message(records)
                formatted = False

            elif kind is TagKind.FORMATTABLE:
                # A blank tag cannot be formatted and written in two steps.
                self._enter(TransactionState.WRITING)
                self.tag.format_and_write(records)
                formatted = True

            else:
                raise UnsupportedTag("Tag doesn't support NDEF")

            return WriteResult(
                uid=capability.uid,
                text=text,
                language=language,
                bytes_written=size,
                formatted=formatted,
            )

        result = self._run(operation)
        logger.info(
            f"Wrote {result.bytes_written} bytes to tag {result.uid.hex()}"
            + (" (formatted)" if result.formatted else "")
        )
        return result

    def read(self) -> ReadResult:
        """
        Read all Well-Known Text records from the tag.

        Records that fail to decode are skipped. A tag without NDEF support,
        without a message, or without text records yields NO_NDEF_MESSAGE.

        Returns:
            ReadResult with decoded records in message order

        Raises:
            ConnectionLost: If the tag left the field
        """
        def operation():
            capability = self.tag.capabilities()
            if capability.kind is not TagKind.NDEF:
                return capability, None

            self._enter(TransactionState.READING)
            message = self.tag.cached_message()
            if message is None:
                message = self.tag.read_message()
            return capability, message

        capability, message = self._run(operation)

        if not message:
            logger.info(f"No NDEF message on tag {capability.uid_hex}")
            return ReadResult(uid=capability.uid, status=ReadStatus.NO_NDEF_MESSAGE)

        decoded = []
        skipped = 0
        for record in message:
            if not self.codec.is_text_record(record):
                continue
            try:
                decoded.append(self.codec.decode(record.data))
            except MalformedPayload as e:
                logger.warning(f"Skipping malformed text record: {e}")
                skipped += 1

        status = ReadStatus.OK if decoded else ReadStatus.NO_NDEF_MESSAGE
        logger.info(f"Read {len(decoded)} text record(s) from tag {capability.uid_hex}")
        return ReadResult(uid=capability.uid, status=status, records=decoded, skipped=skipped)

    def describe(self) -> TagCapability:
        """
        Probe the tag without modifying it.

        Size and writability are only reported for NDEF tags. Probe
        failures leave those fields empty instead of raising.

        Returns:
            TagCapability summary
        """
        summary = TagCapability(uid=bytes(self.tag.uid), technologies=list(self.tag.technologies))

        try:
            probed = self._run(self.tag.capabilities)
        except Exception as e:
            logger.debug(f"Could not read tag details: {e}")
            return summary

        summary.uid = probed.uid or summary.uid
        summary.technologies = list(probed.technologies) or summary.technologies
        summary.is_formattable = probed.is_formattable
        summary.has_ndef = probed.has_ndef
        if probed.has_ndef:
            summary.ndef_max_size = probed.ndef_max_size
            summary.is_writable = probed.is_writable
        return summary


def write_text(tag: TagHandle, text: str, language: Optional[str] = None) -> WriteResult:
    """Write text to a tag in a fresh transaction."""
    return TagTransaction(tag).write(text, language)


def read_text(tag: TagHandle) -> ReadResult:
    """Read text records from a tag in a fresh transaction."""
    return TagTransaction(tag).read()


def describe_tag(tag: TagHandle) -> TagCapability:
    """Summarize a tag's capabilities in a fresh transaction."""
    return TagTransaction(tag).describe()
