"""Configuration constants for the mock dispatch server."""

HOST: str = "127.0.0.1"
PORT: int = 8080
SERVER_NAME: str = "mockdispatch/1.0"
BUFFER_SIZE: int = 1024
READ_CHUNK_SIZE: int = 8192
SOCKET_TIMEOUT_SECS: int = 5
KEEPALIVE_TIMEOUT_SECS: int = 5
MAX_KEEPALIVE_REQUESTS: int = 100
MAX_REQUEST_BYTES: int = 1_048_576
MAX_HEADER_BYTES: int = 16_384
MAX_BODY_BYTES: int = 524_288
MAX_TARGET_LENGTH: int = 8192
WORKER_COUNT: int = 16
REQUEST_QUEUE_SIZE: int = 128
LOG_FORMAT: str = "plain"

# Mock surface: /{MOCK_MOUNT_PREFIX}/{service}/{version}/{resource path}
MOCK_MOUNT_PREFIX: str = "/rest"
CONTEXT_PATH: str = ""
ENABLE_CORS_POLICY: bool = True
MOCKS_DATA_FILE: str = "mocks.json"
EVENT_BUFFER_SIZE: int = 1000
MAX_DELAY_MS: int = 300_000
INVOCATION_RETENTION_DAYS: int = 31
