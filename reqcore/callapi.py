"""Outbound calls to configured remote REST APIs."""

from __future__ import annotations

import base64
import dataclasses
import enum
import json
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any
from urllib.parse import urlencode

import requests

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
TIMEOUT_HEADER = "Time-Out"
JSON_CONTENT_TYPE = "application/json"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

_session = requests.Session()


class CallError(Exception):
    """A failed remote call, with an HTTP status, a description and context inputs."""

    def __init__(
        self,
        status: int,
        description: str,
        message: Any = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(description)
        self.status = status
        self.description = description
        self.message = message
        self.cause = cause
        self.inputs: list[Any] = []
        if cause is not None:
            self.__cause__ = cause

    def input(self, value: Any) -> CallError:
        """Record a piece of context and return the same error."""
        self.inputs.append(value)
        return self

    def __str__(self) -> str:
        text = f"{self.status} {self.description}"
        if self.cause is not None:
            text += f": {self.cause}"
        return text


@dataclass
class RemoteApi:
    """Connection details of one remote API."""

    user: str = ""
    password: str = ""
    domain: str = ""
    name: str = ""


class RequestBodyType(enum.Enum):
    JSON = 0
    FORM = 1
    EMPTY = 2


@dataclass
class CallData:
    """Everything needed to build one outbound request."""

    api: RemoteApi = field(default_factory=RemoteApi)
    path: str = ""
    method: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    req: Any = None
    ssl_verify: bool = False
    body_type: RequestBodyType = RequestBodyType.JSON
    timeout: float | None = None
    enable_log: bool = False
    log_level: int = 0
    decode: Callable[[Any], Any] | None = None


@dataclass
class CallResp:
    """Status and first value of every header of a remote response."""

    headers: dict[str, str] = field(default_factory=dict)
    status: int = 0


@dataclass
class CallParam:
    """Parameters of a remote call; ``query_stack`` is consumed one entry per call."""

    parameters: dict[str, Any] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
    api: RemoteApi = field(default_factory=RemoteApi)
    timeout: float | None = None
    method: str = ""
    path: str = ""
    query: str = ""
    query_stack: list[str] | None = None
    validate_tls: bool = False
    enable_log: bool = False
    json_body: Any = None
    body_type: RequestBodyType = RequestBodyType.JSON
    decode: Callable[[Any], Any] | None = None


@dataclass
class CallResult:
    """Outcome of :func:`call`: the decoded body, the error body, status, or the error."""

    resp: Any = None
    ws_resp: Any = None
    status: CallResp | None = None
    error: CallError | None = None


def basic_auth(username: str, password: str) -> str:
    """Base64 of ``username:password`` as used in a Basic Authorization header."""
    return base64.b64encode(f"{username}:{password}".encode()).decode("ascii")


def _timeout_for(headers: Mapping[str, str] | None, fallback: float | None = None) -> float | None:
    if headers and TIMEOUT_HEADER in headers:
        try:
            seconds = int(headers[TIMEOUT_HEADER])
        except ValueError:
            seconds = 0
        return seconds if seconds > 0 else None
    return fallback if fallback else DEFAULT_TIMEOUT


def _status_line(resp: requests.Response) -> str:
    reason = resp.reason
    if not reason:
        try:
            reason = HTTPStatus(resp.status_code).phrase
        except ValueError:
            reason = ""
    return f"{resp.status_code} {reason}".rstrip()


def _is_ws_response(data: bytes) -> bool:
    try:
        parsed = json.loads(data)
    except ValueError:
        return False
    return parsed is None or isinstance(parsed, dict)


@dataclass
class RemoteApiModel:
    """Named remote APIs and raw calls against them."""

    remote_api_list: dict[str, RemoteApi] = field(default_factory=dict)

    def get_api(self, api_name: str) -> RemoteApi:
        return self.remote_api_list.get(api_name, RemoteApi())

    def _send_raw(
        self,
        request_json: bytes | None,
        api_name: str,
        path: str,
        content_type: str,
        method: str,
        headers: Mapping[str, str] | None,
        label: str,
        force_auth: bool,
    ) -> tuple[bytes, str, int]:
        headers = dict(headers or {})
        api = self.get_api(api_name)
        auth = "Basic " + basic_auth(api.user, api.password)
        req_headers = {"Content-Type": content_type}
        if not force_auth and "Authorization" not in headers:
            req_headers["Authorization"] = auth
        req_headers.update(headers)
        if force_auth:
            req_headers["Authorization"] = auth
        try:
            prepared = requests.Request(
                method or "GET", f"{api.domain}/{path}",
                data=request_json or b"", headers=req_headers,
            ).prepare()
        except (requests.RequestException, ValueError) as exc:
            raise CallError(
                HTTPStatus.INTERNAL_SERVER_ERROR, "Generate Request Failed",
                "Generate Request Failed", exc,
            ) from exc
        try:
            resp = _session.send(prepared, timeout=_timeout_for(headers), verify=False)
        except requests.Timeout as exc:
            desc = f"API_CONNECT_TIMED_OUT#{label}"
            raise CallError(HTTPStatus.REQUEST_TIMEOUT, desc, desc, exc) from exc
        except requests.RequestException as exc:
            desc = f"API_UNABLE_TO_CALL#{label}"
            raise CallError(HTTPStatus.REQUEST_TIMEOUT, desc, desc, exc) from exc
        try:
            data = resp.content
        except requests.Timeout as exc:
            desc = f"API_READ_TIMED_OUT#{label}"
            raise CallError(HTTPStatus.REQUEST_TIMEOUT, desc, desc, exc) from exc
        except requests.RequestException as exc:
            desc = f"API_UNABLE_TO_READ#{label}"
            raise CallError(HTTPStatus.REQUEST_TIMEOUT, desc, desc, exc) from exc
        status_line = _status_line(resp)
        if resp.status_code != HTTPStatus.OK and not _is_ws_response(data):
            desc = f"API_NOK#{api_name}#{api.name}#{status_line}#"
            raise CallError(resp.status_code, desc, desc)
        return data, status_line, resp.status_code

    def consume_rest_basic_auth_api(
        self, request_json, api_name, path, content_type, method, headers
    ) -> tuple[bytes, str]:
        """Call with Basic auth; returns the body and status line, raises CallError."""
        label = f"{api_name}#{self.get_api(api_name).name}#"
        data, status_line, _ = self._send_raw(
            request_json, api_name, path, content_type, method, headers, label, True
        )
        return data, status_line

    def consume_rest_api(
        self, request_json, api_name, path, content_type, method, headers
    ) -> tuple[bytes, str, int]:
        """Call the API (Basic auth unless Authorization is given); returns body, status line, code."""
        label = f"{api_name}# {self.get_api(api_name).name}#"
        return self._send_raw(
            request_json, api_name, path, content_type, method, headers, label, False
        )


def _json_default(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    raise TypeError(f"value of type {type(value).__name__} is not JSON serializable")


def _form_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _form_encode(value: Any) -> str:
    if value is None:
        return ""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        value = dataclasses.asdict(value)
    if not isinstance(value, Mapping):
        raise TypeError(f"form values need a mapping, got {type(value).__name__}")
    pairs: list[tuple[str, str]] = []
    for key in sorted(value):
        item = value[key]
        if isinstance(item, (list, tuple)):
            pairs.extend((str(key), _form_value(v)) for v in item)
        else:
            pairs.append((str(key), _form_value(item)))
    return urlencode(pairs)


def _encode_body(call_data: CallData) -> bytes:
    body_type = call_data.body_type
    try:
        if body_type is RequestBodyType.JSON:
            return json.dumps(
                call_data.req, default=_json_default, ensure_ascii=False, separators=(",", ":")
            ).encode("utf-8")
        if body_type is RequestBodyType.FORM:
            return _form_encode(call_data.req).encode("ascii")
    except (TypeError, ValueError) as exc:
        raise CallError(
            HTTPStatus.INTERNAL_SERVER_ERROR, "Generate Request Failed", call_data.req, exc
        ).input(f"PrepareCall.Marshal:{call_data.req!r}") from exc
    if body_type is RequestBodyType.EMPTY:
        return b""
    raise CallError(
        HTTPStatus.INTERNAL_SERVER_ERROR, "Generate Request Failed", call_data.req,
        ValueError("type is not defined"),
    )


def prepare_call(call_data: CallData) -> requests.PreparedRequest:
    """Build the outbound request: body, Basic auth, content headers and extra headers."""
    body = _encode_body(call_data)
    url = f"{call_data.api.domain}/{call_data.path}"
    headers: dict[str, str] = {}
    if "Authorization" not in call_data.headers:
        headers["Authorization"] = "Basic " + basic_auth(call_data.api.user, call_data.api.password)
    if call_data.body_type is RequestBodyType.JSON:
        headers["Content-Type"] = JSON_CONTENT_TYPE
    elif call_data.body_type is RequestBodyType.FORM:
        headers["Content-Type"] = FORM_CONTENT_TYPE
    headers["Accept"] = JSON_CONTENT_TYPE
    headers.update(call_data.headers)
    method = call_data.method or "GET"
    try:
        return requests.Request(method, url, data=body, headers=headers).prepare()
    except (requests.RequestException, ValueError) as exc:
        text = body.decode("utf-8", errors="replace")
        raise CallError(
            HTTPStatus.INTERNAL_SERVER_ERROR, "Generate Request Failed",
            f"M={method},Url:{url},json:{text}", exc,
        ).input(f"PrepareCall.NewRequest:{call_data}") from exc


def _send(call_data: CallData, prepared: requests.PreparedRequest) -> requests.Response:
    if call_data.enable_log:
        logger.info("Starting request! %s %s", prepared.method, prepared.url)
    try:
        resp = _session.send(
            prepared,
            timeout=_timeout_for(call_data.headers, call_data.timeout),
            verify=False,
        )
    except requests.Timeout as exc:
        raise CallError(
            HTTPStatus.REQUEST_TIMEOUT, "API_CONNECT_TIMED_OUT", call_data, exc
        ).input(f"ConsumeRest.ClientDo:{prepared.method} {prepared.url}") from exc
    except requests.RequestException as exc:
        raise CallError(
            HTTPStatus.REQUEST_TIMEOUT, "API_UNABLE_TO_CALL", call_data, exc
        ).input(f"ConsumeRest.ClientDo:{prepared.method} {prepared.url}") from exc
    if call_data.enable_log:
        logger.info("Got response: %s from %s", resp.status_code, prepared.url)
    return resp


def _read_body(api: RemoteApi, resp: requests.Response) -> bytes:
    try:
        return resp.content
    except requests.Timeout as exc:
        raise CallError(
            HTTPStatus.REQUEST_TIMEOUT, "API_READ_TIMED_OUT", api.name, exc
        ).input("GetResp.ReadAll") from exc
    except requests.RequestException as exc:
        raise CallError(
            HTTPStatus.REQUEST_TIMEOUT, "API_UNABLE_TO_READ", api.name, exc
        ).input("GetResp.ReadAll") from exc


def get_resp(api: RemoteApi, resp: requests.Response) -> tuple[Any, Any, CallResp]:
    """Parse a response: the body on 200, otherwise the error body, plus status and headers."""
    data = _read_body(api, resp)
    ok = resp.status_code == HTTPStatus.OK
    try:
        parsed = json.loads(data)
    except ValueError as exc:
        status = HTTPStatus.INTERNAL_SERVER_ERROR if ok else resp.status_code
        description = "API_OK_RESP_JSON" if ok else "API_NOK_RESP_JSON"
        raise CallError(status, description, api.name, exc).input(
            "GetResp.Unmarshal:" + data.decode("utf-8", errors="replace")
        ) from exc
    call_resp = CallResp(headers=dict(resp.headers), status=resp.status_code)
    if ok:
        return parsed, None, call_resp
    return None, parsed, call_resp


def consume_rest(call_data: CallData) -> tuple[Any, Any, CallResp]:
    """Send the request and parse the reply; raises CallError."""
    try:
        prepared = prepare_call(call_data)
    except CallError as exc:
        exc.input(call_data)
        raise
    resp = _send(call_data, prepared)
    try:
        body, ws_resp, call_resp = get_resp(call_data.api, resp)
    except CallError as exc:
        exc.input(resp)
        raise
    if body is not None and call_data.decode is not None:
        body = call_data.decode(body)
    return body, ws_resp, call_resp


def _consume_rest_json(call_data: CallData) -> Any:
    try:
        prepared = prepare_call(call_data)
    except CallError as exc:
        exc.input(call_data)
        raise
    resp = _send(call_data, prepared)
    data = _read_body(call_data.api, resp)
    try:
        parsed = json.loads(data)
    except ValueError as exc:
        raise CallError(resp.status_code, "API_OK_RESP_JSON", call_data.api.name, exc).input(
            "GetResp.Unmarshal:" + data.decode("utf-8", errors="replace")
        ).input(resp) from exc
    result = call_data.decode(parsed) if call_data.decode is not None else parsed
    if hasattr(result, "set_status"):
        result.set_status(resp.status_code)
    if hasattr(result, "set_headers"):
        result.set_headers(dict(resp.headers))
    return result


def _call_data(param: CallParam) -> CallData:
    if param.query_stack:
        param.query = param.query_stack.pop(0)
    return CallData(
        api=param.api,
        path=param.path + param.query,
        method=param.method,
        headers=dict(param.headers),
        req=param.json_body,
        ssl_verify=not param.validate_tls,
        body_type=param.body_type,
        timeout=param.timeout,
        enable_log=param.enable_log,
        decode=param.decode,
    )


def call(param: CallParam) -> CallResult:
    """Make one call; failures are reported in ``CallResult.error``."""
    call_data = _call_data(param)
    try:
        resp, ws_resp, call_resp = consume_rest(call_data)
    except CallError as exc:
        return CallResult(error=exc)
    return CallResult(resp=resp, ws_resp=ws_resp, status=call_resp)


def remote_call(param: CallParam) -> Any:
    """Make one call and return the decoded JSON body whatever the status; raises CallError."""
    return _consume_rest_json(_call_data(param))


def multi_call(params: list[CallParam]) -> list[CallResult]:
    """Call each in turn, stopping after the first that fails or is not 200."""
    results: list[CallResult] = []
    for param in params:
        result = call(param)
        results.append(result)
        if result.status is None or result.status.status != HTTPStatus.OK:
            break
    return results


def transmit_request_with_auth(
    path: str,
    api: str,
    method: str,
    request_bytes: bytes,
    headers: dict[str, str],
    parse_remote_resp: Callable[[bytes, str, int], tuple[int, Any, Any]],
    consume_handler: Callable[..., tuple[bytes, str, int]],
) -> tuple[int, Any, Any]:
    """Send JSON through ``consume_handler`` and parse it; returns status, details, response."""
    data, desc, status = consume_handler(
        request_bytes, api, path, JSON_CONTENT_TYPE, method, headers
    )
    status, result, resp = parse_remote_resp(data, desc, status)
    if status != HTTPStatus.OK:
        return status, result, resp
    return HTTPStatus.OK, None, resp