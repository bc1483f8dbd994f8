import socket

import httpx
import pytest

from magento_gateway.transport.errors import (
    ApplicationError,
    ConnectionFailed,
    NetworkError,
    ParamsParseError,
    UpstreamHttpError,
    UpstreamTimeout,
    classify,
    format_error_response,
    get_error_status_code,
    to_transport_error,
)

REQUEST = httpx.Request("POST", "http://magento.test/graphql")


def _status_error(status_code, json=None, content=None):
    response = httpx.Response(
        status_code, json=json, content=content, request=REQUEST
    )
    return httpx.HTTPStatusError(
        f"Server error '{status_code}'", request=REQUEST, response=response
    )


class TestToTransportError:
    def test_status_error_keeps_status_and_body(self):
        error = to_transport_error(_status_error(502, json={"errors": [{"message": "x"}]}))
        assert isinstance(error, UpstreamHttpError)
        assert error.status_code == 502
        assert error.status_text == "Bad Gateway"
        assert error.body == {"errors": [{"message": "x"}]}

    def test_status_error_with_text_body(self):
        error = to_transport_error(_status_error(503, content=b"maintenance"))
        assert error.body == "maintenance"

    def test_read_timeout(self):
        error = to_transport_error(httpx.ReadTimeout("timed out", request=REQUEST))
        assert isinstance(error, UpstreamTimeout)
        assert error.code == "ERR_SOCKET_TIMEOUT"

    def test_connect_timeout(self):
        error = to_transport_error(httpx.ConnectTimeout("timed out", request=REQUEST))
        assert isinstance(error, UpstreamTimeout)
        assert error.code == "ECONNABORTED"

    def test_connection_refused(self):
        error = to_transport_error(httpx.ConnectError("[Errno 111] Connection refused"))
        assert isinstance(error, ConnectionFailed)
        assert error.code == "ECONNREFUSED"

    def test_host_not_found_from_message(self):
        error = to_transport_error(
            httpx.ConnectError("[Errno -2] Name or service not known")
        )
        assert error.code == "ENOTFOUND"

    def test_host_not_found_from_cause(self):
        try:
            try:
                raise socket.gaierror(8, "resolver says no")
            except socket.gaierror as cause:
                raise httpx.ConnectError("connect failed") from cause
        except httpx.ConnectError as e:
            error = to_transport_error(e)
        assert error.code == "ENOTFOUND"

    def test_other_httpx_error(self):
        error = to_transport_error(httpx.RemoteProtocolError("peer closed"))
        assert isinstance(error, NetworkError)
        assert error.status_code is None

    def test_non_httpx_error_unchanged(self):
        original = RuntimeError("boom")
        assert to_transport_error(original) is original


class TestClassify:
    def test_timeout_is_400(self):
        result = classify(UpstreamTimeout("timeout of 60000ms exceeded"))
        assert result.status_code == 400
        assert result.message == "timeout of 60000ms exceeded"

    def test_connection_refused_is_500_with_fixed_message(self):
        result = classify(ConnectionFailed("connect ECONNREFUSED", code="ECONNREFUSED"))
        assert result.status_code == 500
        assert result.message == "Network connection refused by server"

    def test_host_not_found_message_differs(self):
        refused = classify(ConnectionFailed("x", code="ECONNREFUSED"))
        not_found = classify(ConnectionFailed("x", code="ENOTFOUND"))
        assert not_found.status_code == 500
        assert not_found.message == "Network connection failed - server not found"
        assert not_found.message != refused.message

    def test_refused_and_timeout_differ(self):
        refused = classify(ConnectionFailed("x", code="ECONNREFUSED"))
        timeout = classify(UpstreamTimeout("x", code="ECONNABORTED"))
        assert (refused.status_code, timeout.status_code) == (500, 400)
        assert refused.message != timeout.message

    def test_upstream_http_error(self):
        body = {"errors": [{"message": "The current customer isn't authorized."}]}
        result = classify(
            UpstreamHttpError("x", status_code=401, status_text="Unauthorized", body=body)
        )
        assert result.status_code == 401
        assert result.message == "Server error: 401 Unauthorized"
        assert result.raw_data == body

    def test_upstream_http_error_without_status(self):
        assert classify(UpstreamHttpError("x", status_code=None)).status_code == 500

    def test_network_error_uses_its_status(self):
        assert classify(NetworkError("bad gateway", status_code=502)).status_code == 502
        assert classify(NetworkError("reset")).status_code == 500

    def test_application_error_status(self):
        result = classify(ApplicationError("teapot", status_code=418))
        assert (result.status_code, result.message) == (418, "teapot")

    def test_params_parse_error_is_400(self):
        assert get_error_status_code(ParamsParseError("bad")) == 400

    def test_generic_error_is_500(self):
        result = classify(KeyError("missing"))
        assert result.status_code == 500
        assert result.raw_data is None

    def test_empty_message_gets_default(self):
        assert classify(RuntimeError()).message == "Unknown error occurred"


class TestFormatErrorResponse:
    def test_passes_upstream_errors_through(self):
        errors = [{"message": "Field 'x' is not defined"}]
        body = format_error_response(
            UpstreamHttpError("x", status_code=400, status_text="Bad Request", body={"errors": errors})
        )
        assert body["success"] is False
        assert body["statusCode"] == 400
        assert body["data"] is None
        assert body["errors"] == errors
        assert body["timestamp"]

    def test_includes_truncated_query(self):
        query = "query " + "x" * 200
        body = format_error_response(RuntimeError("boom"), query=query, variables={"a": 1})
        extensions = body["errors"][0]["extensions"]
        assert extensions["code"] == 500
        assert extensions["query"] == query[:100] + "..."
        assert extensions["variables"] == {"a": 1}

    def test_generic_error(self):
        body = format_error_response(ParamsParseError("Expecting value"))
        assert body["message"] == "Failed to parse params: Expecting value"
        assert body["errors"] == [
            {"message": body["message"], "extensions": {"code": 400}}
        ]

    def test_upstream_body_without_errors_key(self):
        error = UpstreamHttpError(
            "x", status_code=502, status_text="Bad Gateway", body={"message": "proxy down"}
        )
        body = format_error_response(error)
        assert body["statusCode"] == 502
        assert body["errors"] == [
            {"message": "Server error: 502 Bad Gateway", "extensions": {"code": 502}}
        ]
        assert "exception" not in body["errors"][0]["extensions"]
