"""Forwarding incoming requests to remote APIs: header extraction and response envelopes."""

from __future__ import annotations

import dataclasses
import json
from collections.abc import Callable, Iterable, Mapping, MutableMapping
from dataclasses import dataclass, field
from typing import Any

from reqcore.callapi import transmit_request_with_auth

HEADERS_MAP = "headersMap"
FINAL_PATH = "finalPath"
REQUEST_ID_HEADER = "Request-Id"


@dataclass
class WsResponse:
    """The standard JSON envelope of a web-service reply."""

    status: int = 0
    description: str = ""
    result: Any = None
    error_data: list[dict[str, Any]] = field(default_factory=list)
    print_receipt: Any = None
    http_status: int = 0
    http_headers: dict[str, str] = field(default_factory=dict)

    def set_status(self, status: int) -> None:
        self.http_status = status

    def set_headers(self, headers: Mapping[str, str]) -> None:
        self.http_headers = dict(headers)

    @classmethod
    def from_dict(
        cls,
        data: Mapping[str, Any] | None,
        result_decoder: Callable[[Any], Any] | None = None,
    ) -> WsResponse:
        """Build an envelope from decoded JSON, optionally decoding ``result``."""
        data = data or {}
        result = data.get("result")
        if result is not None and result_decoder is not None:
            result = result_decoder(result)
        return cls(
            status=int(data.get("status") or 0),
            description=data.get("description") or "",
            result=result,
            error_data=list(data.get("errors") or []),
            print_receipt=data.get("printReceipt"),
        )

    def to_dict(self) -> dict[str, Any]:
        """The JSON form; empty result, errors and receipt are left out."""
        out: dict[str, Any] = {"status": self.status, "description": self.description}
        if self.result is not None:
            out["result"] = self.result
        if self.error_data:
            out["errors"] = list(self.error_data)
        if self.print_receipt is not None:
            out["printReceipt"] = self.print_receipt
        return out


def extract_value(
    name: str, source: Callable[[str], str], dest: MutableMapping[str, str]
) -> None:
    """Store ``source(name)`` in ``dest``; ``src#dst`` reads ``src`` and stores under ``dst``."""
    if "#" in name:
        parts = name.split("#")
        dest[parts[1]] = source(parts[0])
    else:
        dest[name] = source(name)


def extract_headers(
    parser: Any, headers: Iterable[str] | None, locals: Iterable[str] | None
) -> dict[str, str]:
    """Collect the named request headers and string locals into one mapping."""
    result: dict[str, str] = {}
    for header in headers or ():
        extract_value(header, parser.get_header_value, result)
    for local in locals or ():
        extract_value(local, parser.get_local_string, result)
    return result


def default_headers() -> list[str]:
    """Headers forwarded to remote APIs by default."""
    return ["Authorization", "Request-Id", "Branch-Id", "Person-Id"]


def default_locals() -> list[str]:
    """Locals forwarded to remote APIs by default, ``bankCode`` as ``Bank-Code``."""
    return ["bankCode#Bank-Code", "User-Id"]


def build_final_path(path: str, url_params: Mapping[str, str] | None) -> str:
    """Append every URL parameter value to ``path`` as a further segment."""
    return path + "".join(f"/{value}" for value in (url_params or {}).values())


def _json_default(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    raise TypeError(f"value of type {type(value).__name__} is not JSON serializable")


def consume_remote_post(
    request_id: str,
    request: Any,
    method: str,
    api: str,
    url: str,
    parse_remote_resp: Callable[[bytes, str, int], tuple[int, Any, Any]],
    consume_handler: Callable[..., tuple[bytes, str, int]],
) -> Any:
    """Send ``request`` as JSON with its Request-Id and return the parsed response.

    Failures raised by the handler or the parser propagate unchanged.
    """
    request_bytes = json.dumps(
        request, default=_json_default, ensure_ascii=False, separators=(",", ":")
    ).encode("utf-8")
    headers = {REQUEST_ID_HEADER: request_id}
    _, _, resp = transmit_request_with_auth(
        url, api, method, request_bytes, headers, parse_remote_resp, consume_handler
    )
    return resp