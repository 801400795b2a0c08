from __future__ import annotations

REQUEST_FORMAT = "!Bi"  # kind, resend sequence
RECORD_FORMAT = "!4sciii"  # symbol, side, quantity, price, sequence

STREAM_ALL = 1
RESEND = 2

INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 3000
DEFAULT_TIMEOUT_S = 30.0

DEFAULT_CONNECT_ATTEMPTS = 5
DEFAULT_CONNECT_DELAY_S = 2.0
DEFAULT_SESSION_ATTEMPTS = 3
DEFAULT_SESSION_DELAY_S = 2.0

DEFAULT_OUTPUT = "output.json"
DEFAULT_ERROR_LOG = "error.log"

# widest gap a session will try to repair one resend at a time
DEFAULT_MAX_MISSING = 100_000
