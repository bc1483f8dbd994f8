import os


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "")
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name, "")
    try:
        return float(raw) if raw else default
    except ValueError:
        return default


SERVICE_NAME = os.getenv("SERVICE_NAME", "magento-gateway")
API_BASE_PATH = os.environ.get("API_BASE_PATH", "/api/magento").rstrip("/")

UPSTREAM_BASE_URL = os.environ.get("UPSTREAM_BASE_URL", "http://localhost:8080").rstrip(
    "/"
)
GRAPHQL_PATH = os.environ.get("GRAPHQL_PATH", "/graphql")

# Socket reuse limits for the shared upstream pool
POOL_MAX_CONNECTIONS = _int_env("POOL_MAX_CONNECTIONS", 170)
POOL_MAX_KEEPALIVE_CONNECTIONS = _int_env("POOL_MAX_KEEPALIVE_CONNECTIONS", 30)
POOL_KEEPALIVE_EXPIRY = _float_env("POOL_KEEPALIVE_EXPIRY", 30.0)
UPSTREAM_TIMEOUT = _float_env("UPSTREAM_TIMEOUT", 60.0)

MAX_GET_URL_LENGTH = _int_env("MAX_GET_URL_LENGTH", 8192)

OTLP_ENDPOINT = os.getenv("OTLP_ENDPOINT")
OTLP_HEADERS = os.getenv("OTLP_HEADERS", "")
