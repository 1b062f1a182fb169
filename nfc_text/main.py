"""Main entry point for the NFC text writer."""

import logging
import sys
from typing import Optional

from .config import load_config, Config
from .nfc.reader import NFCReader
from .services.text_tag import TextTagService, OperationRequest, OperationMode

logger = logging.getLogger(__name__)


class Application:
    """Main application class wiring the reader and the text tag service."""

    def __init__(self, config: Optional[Config] = None):
        """
        Initialize application.

        Args:
            config: Optional configuration (will load from env if not provided)
        """
        if config is None:
            config = load_config()

        self.config = config
        self.config.setup_logging()

        logger.info(f"Configuration: {self.config}")

        self.nfc_reader: Optional[NFCReader] = None
        self.text_tags: Optional[TextTagService] = None

        self._initialized = False

    def initialize(self) -> None:
        """Initialize all application components."""
        if self._initialized:
            logger.warning("Application already initialized")
            return

        try:
            logger.info(f"Initializing NFC reader ({self.config.nfc_interface})...")
            if self.nfc_reader is None:
                self.nfc_reader = NFCReader(**self.config.get_nfc_config())
            self.nfc_reader.connect()
            logger.info("NFC reader connected successfully")

            self.text_tags = TextTagService(
                nfc_reader=self.nfc_reader,
                default_language=self.config.default_language,
                rate_limit_seconds=self.config.rate_limit_seconds,
            )

            self._initialized = True
            logger.info("All components initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize application: {e}")
            self.cleanup()
            raise

    def cleanup(self) -> None:
        """Clean up application resources."""
        if self.nfc_reader:
            try:
                self.nfc_reader.disconnect()
            except Exception as e:
                logger.error(f"Error disconnecting NFC reader: {e}")

        self._initialized = False
        logger.debug("Cleanup complete")

    def __enter__(self):
        self.initialize()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.cleanup()

    def run_daemon(self, request: Optional[OperationRequest] = None, callback=None) -> None:
        """Handle tags continuously until interrupted (reads by default)."""
        if not self._initialized:
            self.initialize()

        if request is None:
            request = OperationRequest(OperationMode.READ)

        def log_result(result: dict) -> None:
            if result.get("success"):
                logger.info(f"Tag {result.get('tag_uid')}: {result.get('preview') or result.get('text') or result.get('message')}")
            else:
                logger.warning(f"Tag {result.get('tag_uid')}: {result.get('error')}")

        try:
            self.text_tags.run_daemon(
                request,
                callback=callback or log_result,
                poll_interval=self.config.poll_interval,
            )
        finally:
            self.cleanup()


def main():
    """Main entry point."""
    try:
        app = Application()
        app.run_daemon()
    except KeyboardInterrupt:
        logger.info("Application stopped by user")
        sys.exit(0)
    except Exception as e:
        logger.error(f"Application error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
