"""
Logging configuration for the login client
"""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def setup_logging(log_file: Path | None = None, verbose: bool = False):
    """Setup logging with library logs suppressed to WARNING"""
    logging.getLogger("curl_cffi").setLevel(logging.WARNING)
    logging.getLogger("fido2").setLevel(logging.WARNING)

    client_logger = logging.getLogger("ticketauth")
    client_logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    if log_file is None:
        # keep the interactive console clean unless asked for
        if verbose:
            stream_handler = logging.StreamHandler()
            stream_handler.setFormatter(
                logging.Formatter("%(levelname)s %(name)s: %(message)s")
            )
            client_logger.addHandler(stream_handler)
        else:
            client_logger.addHandler(logging.NullHandler())
        return

    log_file.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )
    client_logger.addHandler(file_handler)
    logger.debug(f"Logging to {log_file}")
