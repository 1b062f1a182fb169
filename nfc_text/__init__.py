"""NFC text writer: NDEF Text records on NFC tags."""

__version__ = "0.1.0"
