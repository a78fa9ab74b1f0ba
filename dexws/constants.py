# =============================================================================
# dexws -- Defaults and Protocol Constants
# =============================================================================
#
# All durations are in seconds.
# =============================================================================

# -- Endpoint ------------------------------------------------------------------

DEFAULT_SCHEME = "wss"
DEFAULT_PATH = "/v1/ws"

ENV_BASE_URL = "DEX_BASE_URL"
ENV_TOKEN = "DEX_TOKEN"
ENV_STREAM = "DEX_STREAM"

# -- Heartbeat -----------------------------------------------------------------

HEARTBEAT_INTERVAL = 10.0
PONG_TIMEOUT = 15.0
MAX_MISSED_PONGS = 3

# -- Polling -------------------------------------------------------------------

POLL_INTERVAL = 30.0
POLL_MESSAGE = "{}"  # empty pull request, flushes server-side buffers

# -- Reconnection --------------------------------------------------------------

RECONNECT_DELAY = 5.0
MAX_RECONNECT_ATTEMPTS = 5

# -- Transport -----------------------------------------------------------------

OPEN_TIMEOUT = 10.0
CLOSE_TIMEOUT = 10.0
MAX_MESSAGE_SIZE = 1_048_576  # 1 MB

# -- WebSocket close codes -----------------------------------------------------

WS_CLOSE_NORMAL = 1000
WS_CLOSE_ABNORMAL = 1006
