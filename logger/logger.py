import logging
import os
import sys

# Configure a single application logger
log_format = '%(asctime)s - %(levelname)s - %(message)s'
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format=log_format,
    handlers=[logging.StreamHandler(sys.stdout)]
)

# Shared by the messaging, request and integrity services
logger = logging.getLogger("handover")

# Export only the logger instance
__all__ = ["logger"]
