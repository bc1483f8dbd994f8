"""
Derive the upstream Magento headers from an inbound request, and parse the
caller's parameter payload.
"""

import json
import logging
from typing import Any, Dict, Optional, Tuple

from magento_gateway.models import RequestContext
from magento_gateway.transport.errors import ParamsParseError
from magento_gateway.utils import token_fingerprint

logger = logging.getLogger("uvicorn.error")

CUSTOMER_TOKEN_COOKIE = "vsf-customer"
CURRENCY_COOKIE = "vsf-currency"
CACHE_ID_COOKIE = "X-Magento-Cache-Id"
UUID_COOKIE = "fp-uuid"
STORE_HEADER = "site-store"
DEFAULT_STORE = "default"


def get_customer_token(ctx: RequestContext) -> Optional[str]:
    return ctx.cookies.get(CUSTOMER_TOKEN_COOKIE)


def get_store(ctx: RequestContext) -> str:
    return ctx.headers.get(STORE_HEADER) or DEFAULT_STORE


def get_currency(ctx: RequestContext) -> Optional[str]:
    return ctx.cookies.get(CURRENCY_COOKIE)


def get_magento_cache_id(ctx: RequestContext) -> Optional[str]:
    return ctx.cookies.get(CACHE_ID_COOKIE)


def get_uuid(ctx: RequestContext) -> Optional[str]:
    return ctx.cookies.get(UUID_COOKIE)


def get_forwarded_for(ctx: RequestContext) -> Optional[str]:
    """X-Forwarded-For, looked up case-insensitively."""
    for name, value in ctx.headers.items():
        if name.lower() == "x-forwarded-for":
            return value
    return None


def get_user_agent(ctx: RequestContext) -> Optional[str]:
    return ctx.headers.get("user-agent")


def derive_headers(
    ctx: RequestContext, custom_headers: Optional[Dict[str, Optional[str]]] = None
) -> Dict[str, str]:
    """
    Build the header set sent upstream for this request.

    Only ``store`` is always present; every other header is added when its
    source cookie or header is set. ``custom_headers`` are merged last and win
    over derived values. An override of ``None`` or ``False`` drops the header.
    """
    headers: Dict[str, str] = {}

    customer_token = get_customer_token(ctx)
    if customer_token:
        headers["Authorization"] = f"Bearer {customer_token}"

    headers["store"] = get_store(ctx)

    currency = get_currency(ctx)
    if currency:
        headers["Content-Currency"] = currency

    cache_id = get_magento_cache_id(ctx)
    if cache_id:
        headers["X-Magento-Cache-Id"] = cache_id

    # user identification
    uuid = get_uuid(ctx)
    if uuid:
        headers["Correlation-ID"] = uuid

    ip_address = get_forwarded_for(ctx)
    if ip_address:
        headers["Real-IP"] = ip_address

    user_agent = get_user_agent(ctx)
    if user_agent:
        headers["User-Agent"] = user_agent

    logger.debug(
        f"[Context] Derived headers {sorted(headers)} for store={headers['store']}, "
        f"customer token {token_fingerprint(customer_token)}"
    )
    merged = {**headers, **(custom_headers or {})}
    # a null or false override removes the header
    return {k: v for k, v in merged.items() if v is not None and v is not False}


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, dict) and not value


def _override_value(value: Any) -> Optional[str]:
    if value is None or value is False:
        return None
    return str(value)


def get_params_and_headers(ctx: RequestContext) -> Tuple[Any, Dict[str, str]]:
    """
    Parse the caller's parameter payload and derive the upstream headers.

    Parameters come from the body when one was sent, otherwise from the JSON
    array carried in the ``params`` query field. When that array has more
    than one element and the last one is an object, it is used as header
    overrides.

    Raises:
        ParamsParseError: If the payload is not valid JSON or the overrides
            are not a string map.
    """
    try:
        if _is_empty(ctx.body):
            raw = ctx.query.params if ctx.query and ctx.query.params else "[]"
            params = json.loads(raw)
        else:
            params = ctx.body

        custom_headers: Dict[str, Optional[str]] = {}
        if isinstance(params, list) and len(params) > 1 and isinstance(params[-1], dict):
            custom_headers = {
                str(k): _override_value(v) for k, v in params[-1].items()
            }

        return params, derive_headers(ctx, custom_headers)
    except (ValueError, TypeError) as e:
        raise ParamsParseError(str(e)) from e
