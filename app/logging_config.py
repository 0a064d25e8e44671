import logging
import os

from pythonjsonlogger import jsonlogger

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(module)s %(message)s"


def setup_logging() -> None:
    """Configure structured JSON logging on the root logger.

    Context passed with ``extra=`` (``update_id``, ``report_id``,
    ``message_id``) comes out as top-level JSON fields, so a single update
    or published report can be followed through the logs.
    """
    log_level = os.environ.get("LOG_LEVEL", "INFO").upper()

    handler = logging.StreamHandler()
    handler.setFormatter(jsonlogger.JsonFormatter(LOG_FORMAT))

    root = logging.getLogger()
    root.setLevel(log_level)
    root.handlers = [handler]
    # httpx logs every request at INFO, including the bot token in the URL.
    logging.getLogger("httpx").setLevel(logging.WARNING)
