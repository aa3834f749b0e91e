"""Request context built over a web-framework parser, with an in-memory test parser."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, ClassVar

logger = logging.getLogger(__name__)

GIN = "gin"
FIBER = "fiber"
TESTING = "testing"
USER_ID_HEADER = "User-Id"
USER_ID_LOCAL = "userId"
UNKNOWN_USER = "unknown"

HEADER_ENV_KEY = "h"
LOCAL_ENV_KEY = "l"
METHOD_ENV_KEY = "m"


class ContextError(Exception):
    """Raised when a request context cannot be built or read."""


@dataclass
class TestingParser:
    """A parser backed by plain dictionaries, for driving handlers in tests."""

    __test__: ClassVar[bool] = False
    framework: ClassVar[str] = TESTING

    method: str = ""
    path: str = ""
    raw_query: str = ""
    headers: dict[str, Any] = field(default_factory=dict)
    locals: dict[str, Any] = field(default_factory=dict)
    url_params: dict[str, str] = field(default_factory=dict)
    args: dict[str, str] = field(default_factory=dict)

    def get_method(self) -> str:
        return self.method

    def get_path(self) -> str:
        return self.path

    def get_header_value(self, name: str) -> str:
        value = self.headers.get(name)
        if not isinstance(value, str):
            raise ContextError(f"wrong header[{name}] type:{type(value).__name__}")
        return value

    def get_raw_url_query(self) -> str:
        return self.raw_query

    def get_local(self, name: str) -> Any:
        return self.locals.get(name)

    def get_local_string(self, name: str) -> str:
        value = self.locals.get(name)
        if not isinstance(value, str):
            raise ContextError(f"wrong local[{name}] type:{type(value).__name__}")
        return value

    def get_url_param(self, name: str) -> str:
        return self.url_params.get(name, "")

    def get_url_params(self) -> dict[str, str]:
        return self.url_params

    def check_url_param(self, name: str) -> tuple[str, bool]:
        return self.url_params.get(name, ""), name in self.url_params

    def set_local(self, name: str, value: Any) -> None:
        self.locals[name] = value

    def set_req_header(self, name: str, value: str) -> None:
        self.headers[name] = value

    def set_resp_header(self, name: str, value: str) -> None:
        self.headers[name] = value

    def get_args(self, *args: Any) -> dict[str, str]:
        return self.args


@dataclass
class WebContext:
    """A parser together with the framework name and the requesting user."""

    parser: Any
    framework: str
    user_id: str


def parse_env(key: str, environ: Mapping[str, str] | None = None) -> dict[str, str]:
    """Parse ``name#value@name#value`` from the environment variable ``key``."""
    source = os.environ if environ is None else environ
    result: dict[str, str] = {}
    for item in source.get(key, "").split("@"):
        pair = item.split("#")
        if len(pair) == 1:
            raise ContextError(f"bad environment: {pair}")
        result[pair[0]] = pair[1]
    return result


def init_test_context(environ: Mapping[str, str] | None = None) -> TestingParser:
    """Build a TestingParser from headers, locals and method held in the environment."""
    source = os.environ if environ is None else environ
    return TestingParser(
        method=source.get(METHOD_ENV_KEY, ""),
        headers=dict(parse_env(HEADER_ENV_KEY, source)),
        locals=dict(parse_env(LOCAL_ENV_KEY, source)),
    )


def init_context(parser: Any, unknown_user: bool = False) -> WebContext:
    """Wrap a parser and resolve the user from the User-Id header or userId local."""
    framework = getattr(parser, "framework", None)
    if framework is None:
        raise ContextError(f"unknown webFramework {type(parser).__name__}")
    if unknown_user and framework != TESTING:
        parser.set_local(USER_ID_LOCAL, UNKNOWN_USER)
    user_id = parser.get_header_value(USER_ID_HEADER)
    if not user_id:
        user_id = parser.get_local_string(USER_ID_LOCAL)
    if not user_id:
        logger.warning("unable to find userId in header and locals => audit trail will fail")
    return WebContext(parser=parser, framework=framework, user_id=user_id)