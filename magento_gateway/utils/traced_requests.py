import logging
from typing import Optional, Dict
from contextlib import contextmanager

from opentelemetry.trace import Tracer

from magento_gateway.utils import mask_token

logger = logging.getLogger("uvicorn.error")


@contextmanager
def traced_request(
    tracer: Tracer,
    operation: str,
    store: Optional[str],
    start_message: str,
    secret: Optional[str] = None,
    extra_attrs: Optional[Dict] = None,
):
    """Context manager to create a span, set common attributes, and log a start message."""
    with tracer.start_as_current_span(operation) as span:
        if store:
            span.set_attribute("magento.store", store)
        if extra_attrs:
            for k, v in extra_attrs.items():
                span.set_attribute(k, v)
        logger.info(mask_token(start_message, secret))
        yield span
