"""NFC Reader module for PN532 HAT communication."""

import logging
import time
from typing import Optional, Literal

try:
    import board
    import busio
    from digitalio import DigitalInOut
    from adafruit_pn532.i2c import PN532_I2C
    from adafruit_pn532.spi import PN532_SPI
    PN532_AVAILABLE = True
except (ImportError, NotImplementedError, RuntimeError):
    # board detection fails off-device
    PN532_AVAILABLE = False
    PN532_I2C = None
    PN532_SPI = None

from .tag import Pn532Tag

logger = logging.getLogger(__name__)


class NFCReaderError(Exception):
    """Base exception for NFC reader errors."""
    pass


class NFCConnectionError(NFCReaderError):
    """Raised when NFC reader connection fails."""
    pass


class NFCReader:
    """
    NFC Reader interface for PN532 HAT.

    Supports both I2C and SPI communication interfaces.
    """

    def __init__(
        self,
        interface: Literal["i2c", "spi"] = "i2c",
        i2c_bus: int = 1,
        spi_bus: int = 0,
        spi_device: int = 0,
    ):
        """
        Initialize NFC Reader.

        Args:
            interface: Communication interface ('i2c' or 'spi')
            i2c_bus: I2C bus number (default: 1 for Raspberry Pi)
            spi_bus: SPI bus number (default: 0)
            spi_device: SPI device number (default: 0)
        """
        if not PN532_AVAILABLE:
            raise ImportError("adafruit-circuitpython-pn532 library not installed. Run: pip install adafruit-circuitpython-pn532")

        self.interface = interface
        self.i2c_bus = i2c_bus
        self.spi_bus = spi_bus
        self.spi_device = spi_device
        self._pn532 = None
        self._initialized = False

        logger.info(f"NFCReader initialized with {interface.upper()} interface")

    def connect(self) -> None:
        """
        Connect to the PN532 NFC reader.

        Raises:
            NFCConnectionError: If connection fails
        """
        if self.interface not in ("i2c", "spi"):
            raise ValueError(f"Unsupported interface: {self.interface}")

        try:
            if self.interface == "i2c":
                self._connect_i2c()
            else:
                self._connect_spi()

            self._pn532.SAM_configuration()
            self._initialized = True

            try:
                ic, ver, rev, support = self._pn532.firmware_version
                logger.info(f"PN532 Firmware version: {ver}.{rev}")
            except Exception as e:
                logger.warning(f"Could not read firmware version: {e}")

        except Exception as e:
            logger.error(f"Failed to connect to PN532: {e}")
            raise NFCConnectionError(f"Failed to connect to PN532: {e}")

    def _connect_i2c(self) -> None:
        """Connect via I2C interface."""
        logger.info(f"Connecting to PN532 via I2C (bus {self.i2c_bus})...")
        i2c = busio.I2C(board.SCL, board.SDA)
        self._pn532 = PN532_I2C(i2c, debug=False)

    def _connect_spi(self) -> None:
        """Connect via SPI interface."""
        logger.info(f"Connecting to PN532 via SPI (bus {self.spi_bus}, device {self.spi_device})...")
        spi = busio.SPI(board.SCK, board.MOSI, board.MISO)
        cs_pin = DigitalInOut(board.D5)
        self._pn532 = PN532_SPI(spi, cs_pin, debug=False)

    def disconnect(self) -> None:
        """Disconnect from the NFC reader."""
        self._initialized = False
        self._pn532 = None
        logger.info("Disconnected from PN532")

    def _require_connection(self) -> None:
        if not self._initialized:
            raise NFCConnectionError("Reader not connected. Call connect() first.")

    def wait_for_tag(self, timeout: float = 5.0) -> Optional[bytes]:
        """
        Wait for an NFC tag to be present.

        Args:
            timeout: Maximum time to wait in seconds

        Returns:
            Tag UID as bytes, or None if timeout
        """
        self._require_connection()

        logger.debug(f"Waiting for NFC tag (timeout: {timeout}s)...")
        start_time = time.time()

        while time.time() - start_time < timeout:
            try:
                uid = self._pn532.read_passive_target(timeout=0.5)
                if uid:
                    logger.debug(f"Tag detected: UID={bytes(uid).hex()}")
                    return bytes(uid)
            except Exception as e:
                logger.debug(f"Error reading tag: {e}")

            time.sleep(0.1)

        logger.debug("No tag detected within timeout")
        return None

    def read_block(self, page: int) -> bytes:
        """
        Read one 4-byte page from an NTAG/Ultralight tag.

        Raises:
            NFCReaderError: If the tag did not answer
        """
        self._require_connection()
        block = self._pn532.ntag2xx_read_block(page)
        if not block or len(block) < 4:
            raise NFCReaderError(f"No data returned for page {page}")
        return bytes(block[:4])

    def write_block(self, page: int, data: bytes) -> None:
        """
        Write one 4-byte page to an NTAG/Ultralight tag.

        Raises:
            NFCReaderError: If the tag rejected the write
        """
        self._require_connection()
        if not self._pn532.ntag2xx_write_block(page, data):
            raise NFCReaderError(f"Write rejected for page {page}")

    def tag(self, uid: bytes, timeout: float = 1.0, format_size: int = 0x06) -> Pn532Tag:
        """Create a tag handle for a detected tag."""
        return Pn532Tag(self, uid, timeout=timeout, format_size=format_size)
