import json

import pytest
import responses

from reqcore.callapi import CallError, RemoteApi, RemoteApiModel, basic_auth
from reqcore.consume import (
    WsResponse,
    build_final_path,
    consume_remote_post,
    default_headers,
    default_locals,
    extract_headers,
    extract_value,
)
from reqcore.webcontext import (
    HEADER_ENV_KEY,
    LOCAL_ENV_KEY,
    ContextError,
    TestingParser,
    init_test_context,
)


def mock_get_header(name):
    return "Header-" + name


def mock_get_local(name):
    return "Local-" + name


def mock_get_empty(name):
    return ""


@pytest.mark.parametrize(
    "value, source, expected",
    [
        ("user", mock_get_header, {"user": "Header-user"}),
        ("user", mock_get_local, {"user": "Local-user"}),
        ("user", mock_get_empty, {"user": ""}),
        ("user", mock_get_empty, {"user": ""}),
    ],
)
def test_extract_value(value, source, expected):
    result = {}
    extract_value(value, source, result)
    assert result == expected


def test_extract_value_renames_with_hash():
    result = {}
    extract_value("bankCode#Bank-Code", mock_get_local, result)
    assert result == {"Bank-Code": "Local-bankCode"}


def test_extract_headers_from_environment():
    environ = {
        HEADER_ENV_KEY: "User-Id#a@Person-Id#b",
        LOCAL_ENV_KEY: "userId#a@personId#b",
    }
    parser = init_test_context(environ)
    result = extract_headers(parser, ["User-Id"], ["userId"])
    assert result == {"User-Id": "a", "userId": "a"}


def test_extract_headers_with_defaults():
    parser = TestingParser(
        headers={
            "Authorization": "Bearer token",
            "Request-Id": "r1",
            "Branch-Id": "b1",
            "Person-Id": "p1",
        },
        locals={"bankCode": "017", "User-Id": "u1"},
    )
    result = extract_headers(parser, default_headers(), default_locals())
    assert result == {
        "Authorization": "Bearer token",
        "Request-Id": "r1",
        "Branch-Id": "b1",
        "Person-Id": "p1",
        "Bank-Code": "017",
        "User-Id": "u1",
    }


def test_extract_headers_missing_header_raises():
    parser = TestingParser(headers={})
    with pytest.raises(ContextError):
        extract_headers(parser, ["Request-Id"], None)


def test_defaults_values():
    assert default_headers() == ["Authorization", "Request-Id", "Branch-Id", "Person-Id"]
    assert default_locals() == ["bankCode#Bank-Code", "User-Id"]


def test_build_final_path():
    assert build_final_path("users", {"a": "x", "b": "y"}) == "users/x/y"
    assert build_final_path("users", {}) == "users"
    assert build_final_path("users", None) == "users"


def test_ws_response_round_trip():
    data = {
        "status": 200,
        "description": "OK",
        "result": {"result": "a"},
        "errors": [{"code": "E1", "description": "bad"}],
    }
    ws = WsResponse.from_dict(data)
    assert ws.result == {"result": "a"}
    assert ws.error_data[0]["code"] == "E1"
    assert ws.to_dict() == data


def test_ws_response_omits_empty_fields_and_decodes_result():
    ws = WsResponse.from_dict({"status": 0, "description": ""})
    assert ws.to_dict() == {"status": 0, "description": ""}
    decoded = WsResponse.from_dict({"result": {"v": 1}}, lambda r: r["v"])
    assert decoded.result == 1


def test_ws_response_status_and_headers():
    ws = WsResponse()
    ws.set_status(404)
    ws.set_headers({"X-A": "1"})
    assert ws.http_status == 404
    assert ws.http_headers == {"X-A": "1"}
    assert "http_status" not in ws.to_dict()


def parse_github_resp_json(resp_bytes, desc, status):
    try:
        resp = json.loads(resp_bytes)
    except ValueError as exc:
        raise CallError(400, "PWC_CICO_0004", str(exc), exc) from exc
    return 200, None, resp


def test_consume_remote_post_against_remote_api():
    password = "password"
    model = RemoteApiModel(
        {"api": RemoteApi(user="user", password=password, domain="https://api.example.com", name="gh")}
    )
    with responses.RequestsMock() as rsps:
        rsps.add(
            responses.POST,
            "https://api.example.com/users/hadley/orgs",
            json=[{"login": "ggobi", "id": 1}],
            status=200,
        )
        resp = consume_remote_post(
            "11111", {"id": "1"}, "POST", "api", "users/hadley/orgs",
            parse_github_resp_json, model.consume_rest_api,
        )
        sent = rsps.calls[0].request
    assert resp == [{"login": "ggobi", "id": 1}]
    assert sent.headers["Request-Id"] == "11111"
    assert sent.headers["Authorization"] == "Basic " + basic_auth("user", password)
    assert json.loads(sent.body) == {"id": "1"}


def test_consume_remote_post_passes_arguments():
    seen = {}

    def handler(request_bytes, api, path, content_type, method, headers):
        seen.update(api=api, path=path, ctype=content_type, method=method, headers=headers)
        return request_bytes, "200 OK", 200

    resp = consume_remote_post(
        "r-1", {"a": 1}, "PUT", "svc", "items/1",
        lambda data, desc, status: (200, None, json.loads(data)), handler,
    )
    assert resp == {"a": 1}
    assert seen == {
        "api": "svc",
        "path": "items/1",
        "ctype": "application/json",
        "method": "PUT",
        "headers": {"Request-Id": "r-1"},
    }


def test_consume_remote_post_propagates_parse_error():
    def handler(request_bytes, api, path, content_type, method, headers):
        return b"not json", "200 OK", 200

    with pytest.raises(CallError) as info:
        consume_remote_post(
            "r", {}, "GET", "svc", "x", parse_github_resp_json, handler
        )
    assert info.value.description == "PWC_CICO_0004"
    assert info.value.status == 400


def test_consume_remote_post_propagates_handler_error():
    def handler(*args):
        raise CallError(408, "API_UNABLE_TO_CALL#svc# x#")

    with pytest.raises(CallError) as info:
        consume_remote_post("r", {}, "GET", "svc", "x", parse_github_resp_json, handler)
    assert info.value.status == 408