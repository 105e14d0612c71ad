"""
Configuration for the registrar service and client.

Every value can be overridden by an environment variable of the same name.
"""

import os

# Registrar identity
REGISTRAR_NAME = os.environ.get("REGISTRAR_NAME", "registrar")
REGISTRAR_KID_LEN = int(os.environ.get("REGISTRAR_KID_LEN", "20"))
# Optional JSON file with {"pkey": ..., "skey": ...}; a fresh pair is made when unset
REGISTRAR_KEY_FILE = os.environ.get("REGISTRAR_KEY_FILE") or None

# Server configuration
SERVER_HOST = os.environ.get("SERVER_HOST", "127.0.0.1")
SERVER_PORT = int(os.environ.get("SERVER_PORT", "5000"))
SERVER_URL = os.environ.get("SERVER_URL", f"http://{SERVER_HOST}:{SERVER_PORT}")

# One time registration tokens
OTT_TIMEOUT_MS = int(os.environ.get("OTT_TIMEOUT_MS", str(30 * 60 * 1000)))
OTT_LENGTH = int(os.environ.get("OTT_LENGTH", "30"))
REG_OTT_HEADER = "X-Registration-OTT"

# Largest accepted registration request body, in bytes
REGISTRATION_BODY_LIMIT = int(os.environ.get("REGISTRATION_BODY_LIMIT", "2048"))

# Client configuration
CLIENT_TIMEOUT = float(os.environ.get("CLIENT_TIMEOUT", "5"))

# Logging configuration
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
