"""
Access and error log channels.

Access: tool calls and results (info, debug).
Error: failures, rejected calls and unknown routes (warning, error).
"""

import logging

from telescope_insight.config import Settings

ACCESS_CHANNEL = "telescope_insight.access"
ERROR_CHANNEL = "telescope_insight.error"

access_log = logging.getLogger(ACCESS_CHANNEL)
error_log = logging.getLogger(ERROR_CHANNEL)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    access_log.disabled = not settings.logging_enabled
    error_log.disabled = not settings.logging_enabled
