"""Target-site constants shared across the fetch layer."""

BASE_URL = "https://steamdb.info"
DEFAULT_DOMAIN = "steamdb.info"
TARGET_URL = "https://steamdb.info/"

REGION_COOKIE = "__Host-cc"
DEFAULT_REGION = "us"

DEFAULT_ACCEPT_LANGUAGE = "en-US,en;q=0.5"
DEFAULT_TIMEOUT = 10
DEFAULT_CACHE_TTL = 300

DEFAULT_FLARESOLVERR_ENDPOINT = "http://localhost:8191/v1"
FLARESOLVERR_URL_ENV = "FLARESOLVERR_URL"
