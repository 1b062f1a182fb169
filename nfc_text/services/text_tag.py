"""Text tag service for writing and reading text on NFC tags."""

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any, Callable

from ..nfc.errors import TagError
from ..nfc.reader import NFCReader
from ..nfc.tag import TagHandle
from ..nfc.transaction import ReadStatus, TagTransaction

logger = logging.getLogger(__name__)


class TextTagError(Exception):
    """Base exception for text tag service errors."""
    pass


class OperationMode(Enum):
    READ = "read"
    WRITE = "write"
    INFO = "info"


@dataclass(frozen=True)
class OperationRequest:
    """What to do with the next tag that enters the field."""
    mode: OperationMode
    text: Optional[str] = None
    language: Optional[str] = None


def preview(text: str, max_length: int = 60) -> str:
    """Shorten text for status messages."""
    if len(text) <= max_length:
        return text
    return text[:max_length] + "…"


class TextTagService:
    """
    Service for writing and reading text records on NFC tags.

    Each detected tag is handled by a fresh TagTransaction. Failures are
    reported in the result dictionary instead of being raised.
    """

    def __init__(
        self,
        nfc_reader: NFCReader,
        default_language: str = "en",
        rate_limit_seconds: float = 2.0,
    ):
        """
        Initialize text tag service.

        Args:
            nfc_reader: NFC reader instance
            default_language: Language code used when a write request has none
            rate_limit_seconds: Minimum time between handling the same tag in watch mode
        """
        self.nfc_reader = nfc_reader
        self.default_language = default_language
        self.rate_limit_seconds = rate_limit_seconds

        self._handled_tags: Dict[str, float] = {}

        logger.info("TextTagService initialized")

    def handle_tag(self, tag: TagHandle, request: OperationRequest) -> Dict[str, Any]:
        """
        Run one operation against a detected tag.

        Args:
            tag: Tag handle for the detected tag
            request: Operation to perform

        Returns:
            Dictionary with operation details:
                - success: bool
                - mode: str
                - tag_uid: str
                - tag_info: str
                - error / error_type: set when success is False
        """
        result: Dict[str, Any] = {
            "success": False,
            "mode": request.mode.value,
            "tag_uid": tag.uid.hex().upper(),
            "timestamp": datetime.now().isoformat(),
        }

        try:
            if request.mode is OperationMode.WRITE:
                result.update(self._write(tag, request))
            elif request.mode is OperationMode.READ:
                result.update(self._read(tag))
            else:
                result["success"] = True
        except TagError as e:
            logger.warning(f"{request.mode.value.capitalize()} failed on tag {result['tag_uid']}: {e}")
            result["error"] = str(e)
            result["error_type"] = type(e).__name__
        except ValueError as e:
            result["error"] = str(e)
            result["error_type"] = "InvalidRequest"

        capability = TagTransaction(tag).describe()
        result["tag_info"] = capability.summary()
        result["tag"] = capability.to_dict()
        return result

    def _write(self, tag: TagHandle, request: OperationRequest) -> Dict[str, Any]:
        text = request.text or ""
        if not text:
            raise ValueError("Enter some text to write")

        language = request.language or self.default_language
        write = TagTransaction(tag).write(text, language)

        return {
            "success": True,
            "text": write.text,
            "preview": preview(write.text),
            "language": write.language,
            "bytes_written": write.bytes_written,
            "formatted": write.formatted,
        }

    def _read(self, tag: TagHandle) -> Dict[str, Any]:
        read = TagTransaction(tag).read()

        if read.status is ReadStatus.NO_NDEF_MESSAGE:
            return {
                "success": True,
                "status": read.status.value,
                "text": None,
                "message": "No NDEF Text record on tag",
                "records": [],
                "skipped": read.skipped,
            }

        return {
            "success": True,
            "status": read.status.value,
            "text": read.text,
            "records": [
                {"language": r.language, "text": r.text, "encoding": r.encoding.value}
                for r in read.records
            ],
            "skipped": read.skipped,
        }

    def _wait_for_tag(self, timeout: float) -> TagHandle:
        logger.info(f"Waiting for NFC tag (timeout: {timeout}s)...")
        uid = self.nfc_reader.wait_for_tag(timeout=timeout)

        if uid is None:
            raise TextTagError("No NFC tag detected within timeout")

        logger.info(f"Tag detected (UID: {uid.hex()})")
        return self.nfc_reader.tag(uid)

    def write_text(
        self,
        text: str,
        language: Optional[str] = None,
        timeout: float = 10.0,
    ) -> Dict[str, Any]:
        """
        Write text to the next tag presented.

        Args:
            text: Text to write
            language: Language code (default: service default)
            timeout: Timeout for waiting for tag in seconds

        Returns:
            Result dictionary, see handle_tag()

        Raises:
            TextTagError: If no tag is presented or the text is empty
        """
        if not text:
            raise TextTagError("Enter some text to write")

        tag = self._wait_for_tag(timeout)
        request = OperationRequest(OperationMode.WRITE, text=text, language=language)
        return self.handle_tag(tag, request)

    def read_text(self, timeout: float = 10.0) -> Dict[str, Any]:
        """
        Read text from the next tag presented.

        Args:
            timeout: Timeout for waiting for tag in seconds

        Returns:
            Result dictionary, see handle_tag()

        Raises:
            TextTagError: If no tag is presented
        """
        tag = self._wait_for_tag(timeout)
        return self.handle_tag(tag, OperationRequest(OperationMode.READ))

    def get_tag_info(self, timeout: float = 10.0) -> Dict[str, Any]:
        """
        Get information about the next tag presented.

        Args:
            timeout: Timeout for waiting for tag in seconds

        Returns:
            Result dictionary with tag_info and tag fields

        Raises:
            TextTagError: If no tag is presented
        """
        tag = self._wait_for_tag(timeout)
        return self.handle_tag(tag, OperationRequest(OperationMode.INFO))

    def process_tag(self, request: OperationRequest, timeout: float = 1.0) -> Optional[Dict[str, Any]]:
        """
        Handle a single tag presence in watch mode.

        Args:
            request: Operation to perform
            timeout: Timeout for waiting for tag in seconds

        Returns:
            Result dictionary if a tag was handled, None otherwise
        """
        uid = self.nfc_reader.wait_for_tag(timeout=timeout)
        if uid is None:
            return None

        uid_hex = uid.hex()
        if self.is_tag_rate_limited(uid_hex):
            logger.debug(f"Tag {uid_hex} rate limited")
            return None

        result = self.handle_tag(self.nfc_reader.tag(uid), request)
        self._handled_tags[uid_hex] = time.time()
        self._cleanup_handled_tags(max_age=3600)
        return result

    def run_daemon(
        self,
        request: OperationRequest,
        callback: Optional[Callable[[Dict[str, Any]], None]] = None,
        poll_interval: float = 0.5,
    ) -> None:
        """
        Continuously handle tags presented to the reader.

        Args:
            request: Operation to perform for every tag
            callback: Optional callback function called with each result
            poll_interval: Polling interval in seconds
        """
        logger.info(f"Starting {request.mode.value} loop...")
        logger.info(f"Poll interval: {poll_interval}s, Rate limit: {self.rate_limit_seconds}s")

        try:
            while True:
                try:
                    result = self.process_tag(request, timeout=poll_interval)

                    if result is not None and callback:
                        try:
                            callback(result)
                        except Exception as e:
                            logger.error(f"Callback error: {e}")

                except KeyboardInterrupt:
                    raise
                except Exception as e:
                    logger.error(f"Error in watch loop: {e}")
                    time.sleep(1)

        except KeyboardInterrupt:
            logger.info("Watch loop stopped by user")

    def is_tag_rate_limited(self, uid: str) -> bool:
        """
        Check if a tag was handled too recently.

        Args:
            uid: Tag UID (hex string)

        Returns:
            True if rate limited
        """
        if uid not in self._handled_tags:
            return False
        return time.time() - self._handled_tags[uid] < self.rate_limit_seconds

    def _cleanup_handled_tags(self, max_age: float = 3600) -> None:
        current_time = time.time()
        stale = [uid for uid, ts in self._handled_tags.items() if current_time - ts > max_age]
        for uid in stale:
            del self._handled_tags[uid]
