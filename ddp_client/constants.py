# =============================================================================
# DDP Client -- Protocol Constants
# =============================================================================
#
# DDP message vocabulary carried inside SockJS raw-websocket frames.
# =============================================================================

# -- Handshake -----------------------------------------------------------------

DDP_VERSION = "1"
DDP_SUPPORTED_VERSIONS = ("1", "pre2", "pre1")

# -- SockJS frame tags ---------------------------------------------------------

FRAME_OPEN = "o"
FRAME_HEARTBEAT = "h"
FRAME_DATA = "a"
FRAME_CLOSE = "c"

# -- Transport -----------------------------------------------------------------

SOCKJS_SERVER_ID_MAX = 999
CONNECTION_TIMEOUT = 10.0  # seconds
MAX_MESSAGE_SIZE = 1_048_576  # 1 MB

# -- Streams -------------------------------------------------------------------

STREAM_PREFIX = "stream"
ROOM_MESSAGES_STREAM = "stream-room-messages"

# -- HTTP side-channel ---------------------------------------------------------

HTTPS_PORT = 443
SEND_MESSAGE_PATH = "/api/v1/chat.sendMessage"

# -- Probe defaults ------------------------------------------------------------

SEND_INTERVAL_MS = 20_000
PING_SERVER_URL = "ws://localhost:8010"
PING_INTERVAL_MS = 20_000
PING_PAYLOAD = "ping"
PING_HISTORY = 100  # replies kept by the ping probe

# -- WebSocket close codes -----------------------------------------------------

WS_CLOSE_NORMAL = 1000
