"""Tests for the text tag service."""

import pytest
import ndef
from unittest.mock import Mock

from nfc_text.services.text_tag import (
    OperationMode,
    OperationRequest,
    TextTagError,
    TextTagService,
    preview,
)

from conftest import FakeTag


def test_service_initialization(mock_nfc_reader):
    service = TextTagService(nfc_reader=mock_nfc_reader, default_language="de")

    assert service.nfc_reader == mock_nfc_reader
    assert service.default_language == "de"


def test_write_text_success(mock_nfc_reader, fake_tag):
    service = TextTagService(nfc_reader=mock_nfc_reader)

    result = service.write_text("Hello", timeout=5.0)

    assert result["success"] is True
    assert result["mode"] == "write"
    assert result["text"] == "Hello"
    assert result["language"] == "en"
    assert result["formatted"] is False
    assert result["tag_uid"] == "04A1B2C3D4E5F6"
    assert "Tag UID: 04A1B2C3D4E5F6" in result["tag_info"]
    mock_nfc_reader.wait_for_tag.assert_called_once_with(timeout=5.0)


def test_write_text_uses_default_language(mock_nfc_reader, fake_tag, codec):
    service = TextTagService(nfc_reader=mock_nfc_reader, default_language="fr")

    service.write_text("Bonjour")

    assert codec.decode(fake_tag.message[0].data).language == "fr"


def test_write_text_no_tag_detected(mock_nfc_reader):
    mock_nfc_reader.wait_for_tag.return_value = None
    service = TextTagService(nfc_reader=mock_nfc_reader)

    with pytest.raises(TextTagError, match="No NFC tag detected"):
        service.write_text("Hello", timeout=1.0)


def test_write_text_empty(mock_nfc_reader):
    service = TextTagService(nfc_reader=mock_nfc_reader)

    with pytest.raises(TextTagError, match="Enter some text"):
        service.write_text("")

    mock_nfc_reader.wait_for_tag.assert_not_called()


def test_handle_tag_reports_not_writable():
    service = TextTagService(nfc_reader=Mock())
    tag = FakeTag(writable=False)

    result = service.handle_tag(tag, OperationRequest(OperationMode.WRITE, text="Hello"))

    assert result["success"] is False
    assert result["error_type"] == "NotWritable"
    assert "write_message" not in tag.calls


def test_handle_tag_reports_capacity():
    service = TextTagService(nfc_reader=Mock())
    tag = FakeTag(max_size=8)

    result = service.handle_tag(tag, OperationRequest(OperationMode.WRITE, text="Hello world"))

    assert result["success"] is False
    assert result["error_type"] == "CapacityExceeded"
    assert "Message too large" in result["error"]


def test_handle_tag_reports_connection_lost():
    service = TextTagService(nfc_reader=Mock())

    result = service.handle_tag(FakeTag(in_range=False), OperationRequest(OperationMode.READ))

    assert result["success"] is False
    assert result["error_type"] == "ConnectionLost"
    assert result["tag_info"].startswith("Tag UID:")


def test_handle_tag_empty_write_request(fake_tag):
    service = TextTagService(nfc_reader=Mock())

    result = service.handle_tag(fake_tag, OperationRequest(OperationMode.WRITE, text=""))

    assert result["success"] is False
    assert result["error"] == "Enter some text to write"
    assert "write_message" not in fake_tag.calls


def test_read_text_success(mock_nfc_reader, fake_tag, text_message):
    fake_tag.message = text_message("Hello", "World")
    service = TextTagService(nfc_reader=mock_nfc_reader)

    result = service.read_text(timeout=5.0)

    assert result["success"] is True
    assert result["text"] == "Hello\nWorld"
    assert [r["text"] for r in result["records"]] == ["Hello", "World"]


def test_read_text_no_text_record(mock_nfc_reader, fake_tag):
    fake_tag.message = [ndef.Record("urn:nfc:wkt:U", "", b"\x04example.com")]
    service = TextTagService(nfc_reader=mock_nfc_reader)

    result = service.read_text()

    assert result["success"] is True
    assert result["status"] == "no_ndef_message"
    assert result["text"] is None
    assert result["message"] == "No NDEF Text record on tag"
    assert "error" not in result


def test_get_tag_info(mock_nfc_reader):
    service = TextTagService(nfc_reader=mock_nfc_reader)

    result = service.get_tag_info(timeout=5.0)

    assert result["success"] is True
    assert result["tag"]["ndef_max_size"] == 137
    assert result["tag"]["kind"] == "ndef"


def test_process_tag_rate_limits_same_uid(mock_nfc_reader, text_message, fake_tag):
    fake_tag.message = text_message("Hello")
    service = TextTagService(nfc_reader=mock_nfc_reader, rate_limit_seconds=60)
    request = OperationRequest(OperationMode.READ)

    assert service.process_tag(request)["text"] == "Hello"
    assert service.process_tag(request) is None
    assert service.is_tag_rate_limited(fake_tag.uid.hex())


def test_process_tag_no_tag(mock_nfc_reader):
    mock_nfc_reader.wait_for_tag.return_value = None
    service = TextTagService(nfc_reader=mock_nfc_reader)

    assert service.process_tag(OperationRequest(OperationMode.READ)) is None


def test_run_daemon_stops_on_interrupt(mock_nfc_reader, fake_tag, text_message):
    fake_tag.message = text_message("Hello")
    mock_nfc_reader.wait_for_tag.side_effect = [fake_tag.uid, KeyboardInterrupt()]
    service = TextTagService(nfc_reader=mock_nfc_reader)
    results = []

    service.run_daemon(OperationRequest(OperationMode.READ), callback=results.append, poll_interval=0.01)

    assert [r["text"] for r in results] == ["Hello"]


@pytest.mark.parametrize("text, expected", [
    ("short", "short"),
    ("x" * 60, "x" * 60),
    ("x" * 61, "x" * 60 + "…"),
])
def test_preview(text, expected):
    assert preview(text) == expected
