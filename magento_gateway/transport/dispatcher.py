"""
Sends GraphQL operations to the upstream Magento endpoint and wraps the
outcome in a ``GraphQLResponse`` envelope.
"""

import logging
from typing import Any, Dict, Optional, Union
from urllib.parse import quote

import httpx
from opentelemetry import trace

from magento_gateway.metrics import get_post_fallbacks_total, upstream_requests_total
from magento_gateway.models import GraphQLResponse, RequestMode
from magento_gateway.transport.compressor import (
    compress_graphql_query,
    is_url_too_long,
    safe_json_stringify,
)
from magento_gateway.transport.errors import (
    ApplicationError,
    classify,
    to_transport_error,
)
from magento_gateway.transport.normalizer import get_response_cache_id, merge_cache_id
from magento_gateway.utils.exception_logging import format_exception_message
from magento_gateway.vars import GRAPHQL_PATH, MAX_GET_URL_LENGTH

logger = logging.getLogger("uvicorn.error")
tracer = trace.get_tracer(__name__)

# RFC 3986 unreserved characters plus the sub-delimiters browsers leave as-is
_URI_COMPONENT_SAFE = "-_.!~*'()"


def encode_query_value(value: str) -> str:
    return quote(value, safe=_URI_COMPONENT_SAFE)


class GraphQLDispatcher:
    """Executes GraphQL requests through the shared connection pool.

    ``execute`` never raises: transport and upstream failures are classified
    and returned as a ``code=-1`` envelope.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        graphql_path: str = GRAPHQL_PATH,
        max_url_length: int = MAX_GET_URL_LENGTH,
    ):
        self.client = client
        self.graphql_path = graphql_path
        self.max_url_length = max_url_length

    def build_get_url(self, query: str, variables: Any) -> str:
        """Relative GET url carrying the compressed query and its variables."""
        compressed_query = compress_graphql_query(query)
        variables_str = safe_json_stringify(variables)
        return (
            f"{self.graphql_path}?query={encode_query_value(compressed_query)}"
            f"&variables={encode_query_value(variables_str)}"
        )

    async def execute(
        self,
        query: str,
        variables: Any = None,
        headers: Optional[Dict[str, str]] = None,
        mode: Union[RequestMode, str] = RequestMode.POST,
    ) -> GraphQLResponse:
        headers = headers or {}
        try:
            mode = RequestMode(mode)
        except (ValueError, TypeError):
            classification = classify(
                ApplicationError(f"Unsupported request mode '{mode}'", status_code=400)
            )
            logger.error(f"[GraphQL] {classification.message}")
            return GraphQLResponse(
                code=-1,
                statusCode=classification.status_code,
                message=classification.message,
            )

        with tracer.start_as_current_span("graphql_request") as span:
            span.set_attribute("graphql.mode", mode.value)
            try:
                if mode is RequestMode.GET:
                    url = self.build_get_url(query, variables)
                    if is_url_too_long(url, self.max_url_length):
                        # The POST retry sends the original, uncompressed query
                        logger.warning(
                            f"[GraphQL] GET url is {len(url)} chars (limit {self.max_url_length}), "
                            "switching to POST"
                        )
                        span.set_attribute("graphql.fallback", True)
                        get_post_fallbacks_total.inc()
                        return await self.execute(
                            query, variables, headers, RequestMode.POST
                        )
                    response = await self.client.get(url, headers=headers)
                else:
                    payload: Dict[str, Any] = {"query": query}
                    if variables is not None:
                        payload["variables"] = variables
                    response = await self.client.post(
                        self.graphql_path, json=payload, headers=headers
                    )

                span.set_attribute("http.status_code", response.status_code)
                response.raise_for_status()

                data = merge_cache_id(
                    self._json_body(response), get_response_cache_id(response.headers)
                )
                upstream_requests_total.labels(mode=mode.value, outcome="success").inc()
                return GraphQLResponse(code=0, data=data)

            except Exception as e:
                error = to_transport_error(e)
                classification = classify(error)
                logger.error(
                    f"[GraphQL] {mode.value.upper()} request failed with "
                    f"{type(error).__name__} -> {classification.status_code}: "
                    f"{format_exception_message(e)}"
                )
                span.set_attribute("graphql.error", type(error).__name__)
                upstream_requests_total.labels(mode=mode.value, outcome="error").inc()
                return GraphQLResponse(
                    code=-1,
                    statusCode=classification.status_code,
                    message=classification.message,
                    data=classification.raw_data,
                )

    @staticmethod
    def _json_body(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            logger.warning(
                f"[GraphQL] Upstream returned a non-JSON body "
                f"({response.headers.get('content-type', 'unknown type')})"
            )
            return None
