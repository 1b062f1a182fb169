"""Pytest configuration and fixtures."""

import pytest
from unittest.mock import Mock

from nfc_text.nfc.errors import ConnectionLost
from nfc_text.nfc.tag import TagCapability, TagHandle
from nfc_text.nfc.text_record import TextRecordCodec


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "hardware: marks tests that require physical PN532 hardware"
    )
    config.addinivalue_line(
        "markers", "e2e: marks end-to-end tests"
    )


class FakeTag(TagHandle):
    """In-memory tag handle that records every call made to it."""

    technologies = ("NfcA", "MifareUltralight")

    def __init__(
        self,
        uid=bytes.fromhex("04A1B2C3D4E5F6"),
        has_ndef=True,
        formattable=False,
        writable=True,
        max_size=137,
        message=None,
        cached=None,
        in_range=True,
    ):
        self.uid = uid
        self.has_ndef = has_ndef
        self.formattable = formattable
        self.writable = writable
        self.max_size = max_size
        self.message = message
        self.cached = cached
        self.in_range = in_range
        self.connected = False
        self.calls = []

    def connect(self):
        self.calls.append("connect")
        if not self.in_range:
            raise ConnectionLost("Tag is no longer in range")
        self.connected = True

    def capabilities(self):
        self.calls.append("capabilities")
        if self.has_ndef:
            return TagCapability(
                uid=self.uid,
                technologies=list(self.technologies) + ["Ndef"],
                ndef_max_size=self.max_size,
                is_writable=self.writable,
                has_ndef=True,
            )
        return TagCapability(
            uid=self.uid,
            technologies=list(self.technologies),
            is_formattable=self.formattable,
        )

    def cached_message(self):
        self.calls.append("cached_message")
        return self.cached

    def read_message(self):
        self.calls.append("read_message")
        if not self.in_range:
            raise ConnectionLost("Tag is no longer in range")
        return self.message

    def write_message(self, records):
        self.calls.append("write_message")
        self.message = list(records)
        self.cached = None

    def format_and_write(self, records):
        self.calls.append("format_and_write")
        self.has_ndef = True
        self.message = list(records)

    def close(self):
        self.calls.append("close")
        self.connected = False


@pytest.fixture
def codec():
    """Text record codec."""
    return TextRecordCodec()


@pytest.fixture
def fake_tag():
    """Writable NDEF tag with no message."""
    return FakeTag()


@pytest.fixture
def blank_tag():
    """Blank tag that can be formatted."""
    return FakeTag(has_ndef=False, formattable=True)


@pytest.fixture
def text_message(codec):
    """Factory for messages made of text records."""
    def make(*texts, language="en"):
        return [codec.create_record(text, language) for text in texts]
    return make


@pytest.fixture
def mock_nfc_reader(fake_tag):
    """Mock NFC reader that hands out the fake tag."""
    from nfc_text.nfc.reader import NFCReader

    reader = Mock(spec=NFCReader)
    reader._initialized = True
    reader.wait_for_tag = Mock(return_value=fake_tag.uid)
    reader.tag = Mock(return_value=fake_tag)

    return reader


@pytest.fixture
def sample_tag_uid():
    """Sample tag UID for testing."""
    return bytes.fromhex("04123456789ABC")
