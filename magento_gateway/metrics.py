"""Prometheus metrics for upstream GraphQL traffic."""

from prometheus_client import Counter

upstream_requests_total = Counter(
    "magento_gateway_upstream_requests_total",
    "Total GraphQL requests sent upstream",
    ["mode", "outcome"],
)

get_post_fallbacks_total = Counter(
    "magento_gateway_get_post_fallbacks_total",
    "GET requests re-sent as POST because the URL was too long",
)
