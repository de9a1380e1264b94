"""Logging setup.

Importing this module applies the default format and level once. Other
modules just call ``logging.getLogger(__name__)``.
"""

import os
import logging

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

__all__ = ["logging"]
