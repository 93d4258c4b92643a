"""Constants and configuration for edgepick."""

# Delay color thresholds (milliseconds)
FAST_THRESHOLD_MS = 100.0    # Green: <= 100ms
MEDIUM_THRESHOLD_MS = 200.0  # Yellow: <= 200ms
# Red: > 200ms

# Download speed color thresholds (MB/s)
SPEED_THRESHOLDS = {"fast": 10.0, "medium": 3.0}

# Default measurement settings
DEFAULT_WORKERS = 200
MAX_WORKERS = 1000
DEFAULT_PING_TIMES = 4
DEFAULT_TEST_COUNT = 10
DEFAULT_DOWNLOAD_TIME = 10.0
DEFAULT_PORT = 443
DEFAULT_URL = "https://cf.xiu2.xyz/url"
DEFAULT_STATUS_CODES = (200, 301, 302)
DEFAULT_PROBE_TIMEOUT = 1.0
DEFAULT_HTTP_TIMEOUT = 2.0

# Delay window; bounds at (or outside) these values disable filtering
DEFAULT_MIN_DELAY_MS = 0.0
DEFAULT_MAX_DELAY_MS = 9999.0

# Output settings
DEFAULT_PRINT_NUM = 10
DEFAULT_IP_FILE = "ip.txt"
DEFAULT_OUTPUT = "result.csv"

BYTES_PER_MB = 1024 * 1024

# Region identifier header (e.g. "cf-ray: 7d1c2a3b4c5d6e7f-LAX")
COLO_HEADER = "cf-ray"

# User agent for HTTP requests
USER_AGENT = "edgepick/0.1.0"

CSV_HEADER = [
    "IP Address",
    "Sent",
    "Received",
    "Packet Loss Rate",
    "Average Delay",
    "Download Speed (MB/s)",
]
