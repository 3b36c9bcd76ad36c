# env vars + constants
import os

API_ENDPOINT = os.getenv("API_ENDPOINT", "http://localhost:8000").rstrip("/")
PORT = int(os.getenv("PORT", "8080"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "5.0"))
VOTE_TIMEOUT = float(os.getenv("VOTE_TIMEOUT", "1.5"))
RESYNC_INTERVAL = float(os.getenv("RESYNC_INTERVAL", "0"))

LOCAL_ID_PREFIX = "local-"
