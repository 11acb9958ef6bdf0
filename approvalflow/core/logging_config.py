# =====================================================
# FILE: approvalflow/core/logging_config.py
# Logging setup
# =====================================================

import logging
from typing import Optional

from approvalflow.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(level: Optional[str] = None) -> None:
    """Configure root logging once for the process"""
    logging.basicConfig(
        level=getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO),
        format=LOG_FORMAT,
    )
    # SQL echo is controlled by DB_ECHO, keep the engine logger quiet otherwise
    if not settings.DB_ECHO:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
