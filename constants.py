import os

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", 3000))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", None)

STATIC_DIR = os.getenv("STATIC_DIR", os.path.join(os.path.dirname(__file__), "public"))

SSL_CERTFILE = os.getenv("SSL_CERTFILE", None)
SSL_KEYFILE = os.getenv("SSL_KEYFILE", None)
SCHEME = "https" if SSL_CERTFILE and SSL_KEYFILE else "http"

# Inclusive range of generated room access codes, always 4 digits
ROOM_CODE_MIN = 1000
ROOM_CODE_MAX = 9999
