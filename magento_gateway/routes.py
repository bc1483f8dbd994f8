import json
import logging
from typing import Any, Optional, Tuple

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from opentelemetry import trace

from magento_gateway.models import QueryParams, RequestContext, RequestMode
from magento_gateway.transport import (
    GraphQLDispatcher,
    format_error_response,
    get_client,
    get_params_and_headers,
)
from magento_gateway.transport.errors import ParamsParseError
from magento_gateway.utils.exception_logging import log_exception_with_details
from magento_gateway.utils.traced_requests import traced_request
from magento_gateway.vars import API_BASE_PATH

router = APIRouter(prefix=API_BASE_PATH)
tracer = trace.get_tracer(__name__)
logger = logging.getLogger("uvicorn.error")


def get_dispatcher(request: Request) -> GraphQLDispatcher:
    """Dispatcher built by the application lifespan, created lazily if missing."""
    dispatcher = getattr(request.app.state, "dispatcher", None)
    if dispatcher is None:
        dispatcher = GraphQLDispatcher(get_client())
        request.app.state.dispatcher = dispatcher
    return dispatcher


async def build_request_context(request: Request) -> RequestContext:
    body = None
    if request.method == "POST":
        raw = await request.body()
        if raw:
            try:
                body = json.loads(raw)
            except ValueError as e:
                raise ParamsParseError(str(e)) from e
    return RequestContext(
        cookies=dict(request.cookies),
        headers=dict(request.headers),
        body=body,
        query=QueryParams(params=request.query_params.get("params")),
    )


def resolve_operation(params: Any, method: str) -> Tuple[str, Any, RequestMode]:
    """
    Pick the GraphQL operation out of the parsed parameters.

    The operation is the first element of a params array, or the body object
    itself. It must carry ``query`` and may carry ``variables`` and ``type``
    (``get`` or ``post``); without ``type`` the inbound method is reused.
    """
    payload = params[0] if isinstance(params, list) and params else params
    if not isinstance(payload, dict):
        raise ParamsParseError("expected an operation object")
    query = payload.get("query")
    if not isinstance(query, str) or not query.strip():
        raise ParamsParseError("operation has no 'query' string")

    requested = payload.get("type") or method
    try:
        mode = RequestMode(str(requested).lower())
    except ValueError:
        raise ParamsParseError(f"unsupported request type '{requested}'") from None
    return query, payload.get("variables"), mode


@router.get("/health")
async def health():
    return {"status": "ok"}


@router.api_route("/graphql", methods=["GET", "POST"])
async def graphql_proxy(
    request: Request, dispatcher: GraphQLDispatcher = Depends(get_dispatcher)
):
    query: Optional[str] = None
    variables: Any = None
    try:
        ctx = await build_request_context(request)
        params, headers = get_params_and_headers(ctx)
        query, variables, mode = resolve_operation(params, request.method)
        correlation_id = headers.get("Correlation-ID")
        with traced_request(
            tracer,
            operation="graphql_proxy",
            store=headers.get("store"),
            start_message=f"[Route] {request.method} -> upstream {mode.value.upper()}. "
            f"Store: {headers.get('store')}, Correlation-ID: {correlation_id}",
            secret=correlation_id,
            extra_attrs={"graphql.mode": mode.value},
        ) as span:
            result = await dispatcher.execute(query, variables, headers, mode)
            span.set_attribute("graphql.code", result.code)
        if not result.ok:
            logger.debug(
                f"[Route] Upstream failure returned to caller: {result.statusCode} {result.message}"
            )
        return JSONResponse(result.to_payload())
    except ParamsParseError as e:
        logger.warning(f"[Route] Rejected request: {e}")
        return JSONResponse(status_code=e.status_code, content=format_error_response(e))
    except Exception as e:
        log_exception_with_details(logger, "[Route]", e)
        return JSONResponse(
            status_code=500, content=format_error_response(e, query, variables)
        )
