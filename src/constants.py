import json
import os

from dotenv import load_dotenv

load_dotenv(os.getenv("ENV_FILE"), override=True)

# General
PRODUCT = os.getenv("PRODUCT", "corpus-curation")
VERSION = os.environ.get("VERSION", "0")
ENV = os.getenv("ENV", "stg")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "text")

BASE_PATH = os.path.dirname(os.path.realpath(__file__))

# Quality gates
MAX_VALIDATION_ATTEMPTS = int(os.getenv("MAX_VALIDATION_ATTEMPTS", "3"))
RETRY_DELAYS_MS = json.loads(os.getenv("RETRY_DELAYS_MS", "[0, 2000, 5000]"))
SIMILARITY_THRESHOLD = float(os.getenv("SIMILARITY_THRESHOLD", "0.85"))
GATE_RESULT_RETENTION_DAYS = int(os.getenv("GATE_RESULT_RETENTION_DAYS", "90"))

# Lifecycle
REPLACEMENT_CHAIN_MAX_DEPTH = int(os.getenv("REPLACEMENT_CHAIN_MAX_DEPTH", "10"))
AUTO_APPROVAL_ENABLED = os.getenv("AUTO_APPROVAL_ENABLED", "true").lower() in (
    "1",
    "true",
    "yes",
)
