"""Tests for the NDEF Text record codec."""

import pytest
import ndef

from nfc_text.nfc.errors import MalformedPayload
from nfc_text.nfc.text_record import (
    TEXT_RECORD_TYPE,
    TextEncoding,
    TextRecord,
    normalize_language,
)


@pytest.mark.parametrize("text", ["Hello", "Grüße aus Köln", "日本語のテキスト", "emoji 🎉", "a\nb"])
@pytest.mark.parametrize("language", ["en", "de", "ja"])
def test_round_trip(codec, text, language):
    """Decoding an encoded payload returns the text, language and UTF-8."""
    record = codec.decode(codec.encode(text, language))

    assert record == TextRecord(language=language, text=text, encoding=TextEncoding.UTF8)


def test_encode_layout(codec):
    """Status byte, language and UTF-8 text are laid out in order."""
    payload = codec.encode("Hi", "en")

    assert payload == b"\x02enHi"
    assert payload[0] & 0x80 == 0
    assert payload[0] & 0x40 == 0


def test_encode_empty_text(codec):
    """Empty text encodes to status byte plus language only."""
    payload = codec.encode("", "en")

    assert len(payload) == 1 + len("en")
    assert codec.decode_text(payload) == ""


def test_encode_lowercases_language(codec):
    assert codec.encode("x", "EN-US")[:6] == b"\x05en-us"


def test_encode_blank_language_falls_back_to_en(codec):
    assert codec.encode("x", "  ") == b"\x02enx"


def test_encode_default_language_uses_locale(codec, monkeypatch):
    monkeypatch.setattr("locale.getlocale", lambda: ("fr_FR", "UTF-8"))

    assert codec.decode(codec.encode("Bonjour")).language == "fr"


def test_encode_default_language_without_locale(codec, monkeypatch):
    monkeypatch.setattr("locale.getlocale", lambda: (None, None))

    assert codec.decode(codec.encode("Hello")).language == "en"


@pytest.mark.parametrize("language", ["x" * 64, "français"])
def test_normalize_language_rejects_invalid_codes(language):
    with pytest.raises(ValueError):
        normalize_language(language)


def test_decode_empty_payload(codec):
    assert codec.decode(b"") == TextRecord(language="", text="")


@pytest.mark.parametrize("payload", [b"\x02e", b"\x05en", b"\x3f", b"\x82"])
def test_decode_truncated_language(codec, payload):
    """A language length running past the payload is malformed."""
    with pytest.raises(MalformedPayload):
        codec.decode(payload)


def test_decode_language_only(codec):
    assert codec.decode(b"\x02en") == TextRecord(language="en", text="")


def test_decode_utf16_big_endian(codec):
    payload = bytes([0x80 | 2]) + b"en" + "Héllo".encode("utf-16-be")

    record = codec.decode(payload)

    assert record.text == "Héllo"
    assert record.encoding is TextEncoding.UTF16


def test_decode_utf16_with_bom(codec):
    payload = bytes([0x80 | 2]) + b"de" + "Straße".encode("utf-16")

    assert codec.decode_text(payload) == "Straße"


def test_decode_invalid_utf8(codec):
    with pytest.raises(MalformedPayload):
        codec.decode(b"\x02en\xff\xfe\xfd")


def test_decode_odd_length_utf16(codec):
    with pytest.raises(MalformedPayload):
        codec.decode(bytes([0x82]) + b"en" + b"\x00A\x00")


def test_decode_accepts_any_language_bytes(codec):
    record = codec.decode(b"\x02\xff\x00text")

    assert record.text == "text"
    assert len(record.language) == 2


def test_decode_ignores_reserved_bit(codec):
    assert codec.decode_text(b"\x42enHi") == "Hi"


def test_create_record(codec):
    record = codec.create_record("Hello", "en")

    assert record.type == TEXT_RECORD_TYPE
    assert record.name == ""
    assert record.data == b"\x02enHello"
    assert codec.is_text_record(record)


def test_encode_message_wire_format(codec):
    """A single short Text record: MB|ME|SR, TNF=1, type 'T'."""
    octets = codec.encode_message(codec.create_message("Hi", "en"))

    assert octets == b"\xd1\x01\x05T\x02enHi"


def test_parse_message_keeps_raw_payloads(codec):
    records = [codec.create_record("Hello", "en"), ndef.Record("urn:nfc:wkt:U", "", b"\x04example.com")]

    parsed = codec.parse_message(codec.encode_message(records))

    assert [r.type for r in parsed] == ["urn:nfc:wkt:T", "urn:nfc:wkt:U"]
    assert parsed[0].data == b"\x02enHello"
    assert codec.is_text_record(parsed[0])
    assert not codec.is_text_record(parsed[1])


def test_parse_message_invalid(codec):
    with pytest.raises(MalformedPayload):
        codec.parse_message(b"\xd1\x01\x40T\x02en")
