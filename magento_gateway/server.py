from contextlib import asynccontextmanager

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from prometheus_client import Info
from prometheus_fastapi_instrumentator import Instrumentator

from magento_gateway.routes import router
from magento_gateway.transport import GraphQLDispatcher, close_client, init_client
from magento_gateway.vars import OTLP_ENDPOINT, OTLP_HEADERS, SERVICE_NAME


@asynccontextmanager
async def lifespan(app: FastAPI):
    # The pool is the only state shared between requests
    client = init_client()
    HTTPXClientInstrumentor.instrument_client(client)
    app.state.dispatcher = GraphQLDispatcher(client)
    try:
        yield
    finally:
        app.state.dispatcher = None
        await close_client()


app = FastAPI(lifespan=lifespan)
instrumentator = Instrumentator()

instrumentator.instrument(app).expose(app)

trace.set_tracer_provider(
    TracerProvider(resource=Resource.create({"service.name": SERVICE_NAME}))
)
tracer_provider = trace.get_tracer_provider()
if OTLP_ENDPOINT:
    otlp_exporter = OTLPSpanExporter(
        endpoint=OTLP_ENDPOINT,
        headers=OTLP_HEADERS or None,
    )
    tracer_provider.add_span_processor(BatchSpanProcessor(otlp_exporter))

FastAPIInstrumentor.instrument_app(app)

# Add app_name to the metrics
app_info = Info("fastapi_app_info", "Application Info")
app_info.info({"app_name": SERVICE_NAME})

app.include_router(router)
