import asyncio
import json
import pytest
import httpx
from typing import Any
from fastapi import Request, status
from pydantic import BaseModel
from main import app
from toolkit.api.dependencies import get_http_client, get_push_allowed_hosts
from toolkit.api.schemas import EchoRequest, JSONEnvelope
from toolkit.core.exceptions import JSONBodyError, JSONBodyTooLargeError, SlugError
from toolkit.utils.json_utils import decode_json_body, read_limited_body

json_cases = [
    # (name, body, max size, allow unknown, expected message or None)
    ("good json", '{"foo": "bar"}', 1 << 10, False, None),
    ("badly-formatted json", '{"foo":}', 1 << 10, False, "body contains badly-formed JSON (at character 8)"),
    ("incorrect type", '{"foo": 1}', 1 << 10, False, 'body contains incorrect JSON type for field "foo"'),
    ("more than one json", '{"foo": "bar"}{"alpha": "beta"}', 1 << 10, False, "body contains more than one json value"),
    ("empty body", "", 1 << 10, False, "body must not be empty"),
    ("syntax error", '{"foo": "bar}', 1 << 10, False, "body contains badly-formed JSON"),
    ("unknown field not allowed", '{"fooo": "bar"}', 1 << 10, False, 'body contains unknown key "fooo"'),
    ("unknown field allowed", '{"fooo": "bar"}', 1 << 10, True, None),
    ("missing field name", '{jack: "bar"}', 1 << 10, True, "body contains badly-formed JSON (at character 2)"),
    ("file too large", '{"foo": "bar"}', 5, True, "body must not be larger than 5 bytes"),
    ("not a json object", '"hello world"', 1 << 10, True, "body contains incorrect JSON type (at character 13)"),
    ("not a number literal", '{"foo": NaN}', 1 << 10, False, "body contains badly-formed JSON (at character 9)"),
    ("infinity literal", '{"foo": -Infinity}', 1 << 10, False, "body contains badly-formed JSON (at character 10)"),
]

@pytest.mark.parametrize("name,body,max_size,allow_unknown,expected", json_cases)
def test_read_json(test_client, toolkit_config, name, body, max_size, allow_unknown, expected):
    toolkit_config.max_json_size = max_size
    toolkit_config.allow_unknown_fields = allow_unknown

    response = test_client.post(
        "/api/json/echo",
        content=body,
        headers={"Content-Type": "application/json"}
    )

    data = response.json()
    if expected is None:
        assert response.status_code == status.HTTP_200_OK, name
        assert data["error"] is False
        return

    assert data == {"error": True, "message": expected}, name
    if "larger than" in expected:
        assert response.status_code == 413
    else:
        assert response.status_code == status.HTTP_400_BAD_REQUEST

def test_read_json_echoes_payload(test_client):
    response = test_client.post("/api/json/echo", json={"foo": "bar"})

    assert response.json() == {"error": False, "message": "received", "data": {"foo": "bar"}}

def test_decode_allows_surrounding_whitespace():
    value = decode_json_body(b'  \n{"foo": "bar"}\n  ', EchoRequest)
    assert value.foo == "bar"

def test_decode_type_error_wins_over_trailing_value():
    with pytest.raises(JSONBodyError) as exc_info:
        decode_json_body(b'{"foo": 1} {"foo": "bar"}', EchoRequest)
    assert exc_info.value.message == 'body contains incorrect JSON type for field "foo"'

def test_decode_nested_field_path():
    class Inner(BaseModel):
        count: int

    class Outer(BaseModel):
        inner: Inner

    with pytest.raises(JSONBodyError) as exc_info:
        decode_json_body(b'{"inner": {"count": "3"}}', Outer)
    assert exc_info.value.message == 'body contains incorrect JSON type for field "inner.count"'

def test_decode_missing_required_field():
    class Named(BaseModel):
        name: str

    with pytest.raises(JSONBodyError) as exc_info:
        decode_json_body(b"{}", Named)
    assert exc_info.value.message == "name: Field required"

def test_decode_non_model_target():
    assert decode_json_body(b"[1, 2, 3]", list) == [1, 2, 3]

def test_decode_invalid_utf8():
    with pytest.raises(JSONBodyError) as exc_info:
        decode_json_body(b'{"foo": "\xff"}', EchoRequest)
    assert exc_info.value.message.startswith("body contains badly-formed JSON")

def test_decode_rejects_bare_constant():
    with pytest.raises(JSONBodyError) as exc_info:
        decode_json_body(b"NaN", Any)
    assert exc_info.value.message == "body contains badly-formed JSON (at character 1)"

def test_decode_offset_counts_bytes():
    with pytest.raises(JSONBodyError) as exc_info:
        decode_json_body('{"ü": }'.encode("utf-8"), EchoRequest)
    assert exc_info.value.message == "body contains badly-formed JSON (at character 8)"

def _chunked_request(chunks):
    messages = [{"type": "http.request", "body": chunk, "more_body": True} for chunk in chunks]
    messages.append({"type": "http.request", "body": b"", "more_body": False})

    async def receive():
        return messages.pop(0)

    return Request({"type": "http", "method": "POST", "headers": []}, receive)

def test_read_limited_body_without_content_length():
    body = asyncio.run(read_limited_body(_chunked_request([b'{"foo": ', b'"bar"}']), 64))
    assert body == b'{"foo": "bar"}'

    with pytest.raises(JSONBodyTooLargeError) as exc_info:
        asyncio.run(read_limited_body(_chunked_request([b"x" * 6, b"x" * 6]), 10))
    assert exc_info.value.status_code == 413
    assert exc_info.value.message == "body must not be larger than 10 bytes"

def test_write_json_round_trip(tools):
    response = tools.write_json(
        status.HTTP_202_ACCEPTED,
        JSONEnvelope(error=False, message="accepted", data={"id": 7}),
        headers={"X-Request-Id": "abc", "Content-Type": "text/plain"}
    )

    assert response.status_code == status.HTTP_202_ACCEPTED
    assert response.headers["content-type"] == "application/json"
    assert response.headers["x-request-id"] == "abc"
    decoded = json.loads(response.body)
    assert decoded["error"] is False
    assert decoded["message"] == "accepted"
    assert decoded["data"] == {"id": 7}

def test_write_json_omits_empty_data(tools):
    response = tools.write_json(status.HTTP_200_OK, JSONEnvelope(message="ok"))
    assert json.loads(response.body) == {"error": False, "message": "ok"}

def test_error_json_defaults(tools):
    response = tools.error_json(ValueError("something went wrong"))

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert json.loads(response.body) == {"error": True, "message": "something went wrong"}

def test_error_json_status(tools):
    response = tools.error_json(SlugError("empty string not permitted"), status.HTTP_503_SERVICE_UNAVAILABLE)

    assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
    assert json.loads(response.body)["message"] == "empty string not permitted"

def test_error_json_keeps_error_status(tools):
    response = tools.error_json(JSONBodyError("body must not be empty", 422))
    assert response.status_code == 422

def _remote(requests):
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(status.HTTP_202_ACCEPTED, json={"ok": True})
    return httpx.MockTransport(handler)

def test_push_json_to_remote(tools):
    requests = []

    async def push():
        async with httpx.AsyncClient(transport=_remote(requests)) as client:
            return await tools.push_json_to_remote("http://remote.test/hook", {"foo": "bar"}, client=client)

    response, status_code = asyncio.run(push())

    assert status_code == status.HTTP_202_ACCEPTED
    assert response.json() == {"ok": True}
    assert requests[0].method == "POST"
    assert requests[0].headers["content-type"] == "application/json"
    assert json.loads(requests[0].content) == {"foo": "bar"}

def test_push_json_transport_error(tools):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async def push():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await tools.push_json_to_remote("http://remote.test/hook", {"foo": "bar"}, client=client)

    with pytest.raises(httpx.ConnectError):
        asyncio.run(push())

def test_push_route(test_client):
    requests = []

    async def override_client():
        async with httpx.AsyncClient(transport=_remote(requests)) as client:
            yield client

    app.dependency_overrides[get_http_client] = override_client
    app.dependency_overrides[get_push_allowed_hosts] = lambda: ["remote.test"]

    response = test_client.post(
        "/api/json/push",
        params={"uri": "http://remote.test/hook"},
        json={"alpha": [1, 2]}
    )

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["data"] == {"status_code": status.HTTP_202_ACCEPTED}
    assert json.loads(requests[0].content) == {"alpha": [1, 2]}

def test_push_route_refuses_unlisted_host(test_client):
    requests = []

    async def override_client():
        async with httpx.AsyncClient(transport=_remote(requests)) as client:
            yield client

    app.dependency_overrides[get_http_client] = override_client
    app.dependency_overrides[get_push_allowed_hosts] = lambda: ["remote.test"]

    response = test_client.post(
        "/api/json/push",
        params={"uri": "http://169.254.169.254/latest"},
        json={"alpha": [1, 2]}
    )

    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json() == {"error": True, "message": "pushing to http://169.254.169.254/latest is not permitted"}
    assert requests == []
