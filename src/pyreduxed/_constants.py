"""Internal constants shared across the library."""

DEFAULT_STORAGE_AREA = "sync"
DEFAULT_STORAGE_KEY = "reduxed"

# ------------------------------------------------------------------
# Write buffer lifetime (milliseconds)
# ------------------------------------------------------------------

DEFAULT_BUFFER_LIFE_MS = 100
MIN_BUFFER_LIFE_MS = 0
MAX_BUFFER_LIFE_MS = 2000

# ------------------------------------------------------------------
# Storage area quotas (bytes), modelled on browser extension storage
# ------------------------------------------------------------------

SYNC_QUOTA_BYTES_PER_ITEM = 8192

