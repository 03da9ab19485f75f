import logging

logger = logging.getLogger("faultpage")
logger.setLevel(logging.INFO)
