from .pool import init_client, get_client, close_client
from .context import derive_headers, get_params_and_headers
from .compressor import compress_graphql_query, is_url_too_long, safe_json_stringify
from .normalizer import get_response_cache_id
from .errors import classify, get_error_status_code, format_error_response
from .dispatcher import GraphQLDispatcher

__all__ = [
    "init_client",
    "get_client",
    "close_client",
    "derive_headers",
    "get_params_and_headers",
    "compress_graphql_query",
    "is_url_too_long",
    "safe_json_stringify",
    "get_response_cache_id",
    "classify",
    "get_error_status_code",
    "format_error_response",
    "GraphQLDispatcher",
]
