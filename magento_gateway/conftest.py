import httpx
import pytest

UPSTREAM_URL = "http://magento.test"


class UpstreamRecorder:
    """Fake upstream: records every request and answers with a canned response."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.status_code = 200
        self.json = {"data": {}}
        self.headers: dict = {}
        self.content = None
        self.error = None

    def respond(self, status_code=200, json=None, headers=None, content=None):
        self.status_code = status_code
        self.json = json
        self.headers = headers or {}
        self.content = content

    def fail_with(self, error: Exception):
        self.error = error

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if self.content is not None:
            return httpx.Response(
                self.status_code, content=self.content, headers=self.headers
            )
        return httpx.Response(self.status_code, json=self.json, headers=self.headers)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=UPSTREAM_URL, transport=httpx.MockTransport(self)
        )


@pytest.fixture
def upstream():
    return UpstreamRecorder()
