"""Configuration settings for the document intelligence search engine."""

import logging
import os
from dotenv import load_dotenv

load_dotenv()

# Logging setup
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
    datefmt="%H:%M:%S",
)

# Remote document store
DOCUMENT_STORE_BASE_URL = os.getenv("DOCUMENT_STORE_BASE_URL", "http://127.0.0.1:8080")
DOCUMENT_STORE_API_KEY = os.getenv("DOCUMENT_STORE_API_KEY")

# Retry settings for store calls
MAX_RETRIES = int(os.getenv("DOCUMENT_STORE_MAX_RETRIES", "3"))
RETRY_BACKOFF_FACTOR = 2.0
