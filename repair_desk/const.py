from __future__ import annotations

# Local persistence
ORDERS_STORAGE_KEY = "orders"
CUSTOMERS_STORAGE_KEY = "customers"
STORAGE_VERSION = 1
DEFAULT_STORAGE_DIR = ".repair_desk"

# Option keys understood by ``SyncConfig.from_options``
CONF_BASE_URL = "base_url"
CONF_PROJECT_ID = "project_id"
CONF_API_KEY = "api_key"
CONF_STORAGE_DIR = "storage_dir"
CONF_RETRY_DELAY = "retry_delay"
CONF_RETRY_MAX_ATTEMPTS = "retry_max_attempts"
CONF_RETRY_BACKOFF = "retry_backoff"
CONF_RETRY_MAX_DELAY = "retry_max_delay"
CONF_SYNC_CONCURRENCY = "sync_concurrency"
CONF_REQUEST_TIMEOUT = "request_timeout"

DEFAULT_RETRY_DELAY = 5.0
DEFAULT_RETRY_MAX_ATTEMPTS = 5
DEFAULT_RETRY_BACKOFF = 2.0
DEFAULT_RETRY_MAX_DELAY = 300.0
DEFAULT_SYNC_CONCURRENCY = 1
DEFAULT_REQUEST_TIMEOUT = 30.0

ENV_BASE_URL = "REPAIR_DESK_BASE_URL"
ENV_PROJECT_ID = "REPAIR_DESK_PROJECT_ID"
ENV_API_KEY = "REPAIR_DESK_API_KEY"

# Record shape constraints
PHOTO_SLOTS = 4
MAX_ID_LENGTH = 36

# Auxiliary lookup lists kept alongside orders
DIRECTORY_SERVICE_CENTERS = "service_centers"
DIRECTORY_SERVICE_PROVIDERS = "service_providers"
DIRECTORY_KINDS: tuple[str, ...] = (DIRECTORY_SERVICE_CENTERS, DIRECTORY_SERVICE_PROVIDERS)

CSV_MISSING = "N/A"
