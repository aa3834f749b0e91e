# reqcore

Building blocks for services that receive HTTP requests and pass them on to
other HTTP APIs. The package is a library. It has no command-line entry point.

## Modules

- **`reqcore.callapi`**: outbound calls to named remote APIs.
  - `RemoteApiModel` holds `RemoteApi` entries by name. `consume_rest_basic_auth_api`
    always sends Basic auth. `consume_rest_api` sends Basic auth unless the
    caller passes an `Authorization` header.
  - `prepare_call` builds a `requests.PreparedRequest` from `CallData`. The body
    is JSON, form-encoded or empty, as set by `RequestBodyType`.
  - `call` returns a `CallResult`, and failures land in its `error` field.
    `remote_call` raises `CallError` when it fails.
  - When a `CallParam` has a `query_stack`, each call takes the next entry from
    it.
  - `multi_call` runs calls in order. It stops after the first call that fails
    or does not return 200.
  - A `Time-Out` header sets the timeout in seconds. Without it the timeout is
    30 seconds.
- **`reqcore.consume`**: forwarding request data to remote calls.
  - `extract_value` and `extract_headers` copy headers and string locals from a
    parser into a mapping. A `"source#Target"` spec copies the value under a new
    name.
  - `default_headers()` and `default_locals()` give the lists forwarded by
    default.
  - `build_final_path` appends the URL parameter values to a base path.
  - `WsResponse` is the `status` / `description` / `result` / `errors` /
    `printReceipt` JSON envelope.
  - `consume_remote_post` sends a JSON request together with its `Request-Id`.
- **`reqcore.query`**: shaping query results.
  - `filterate` drops every row that matches a filter clause. Clauses have the
    form `field op value value2` and are joined with ` and `.
  - `paginate` sorts the rows, applies the order and cuts the window.
  - `single_transform` and `all_transform` wrap rows in a `QueryResp`.
  - `CommandReplacer` puts the pagination data into a command.
  - `QueryCache` keeps rows for a bounded time.
  - `parse_page_params` checks the page and size query parameters and raises
    `PaginationError` when they are invalid.
- **`reqcore.validation`**: checks and messages for validation.
  - `is_padded_ip` accepts dotted IPv4 addresses whose octets all have three
    digits.
  - `Translator` and `init_translator()` provide Persian validation messages.
- **`reqcore.webcontext`**: the request context.
  - `init_context` wraps a parser in a `WebContext` and resolves the user from
    the `User-Id` header or the `userId` local.
  - `TestingParser` is a parser backed by dictionaries.
  - `init_test_context` builds a `TestingParser` from the environment variables
    `h`, `l` and `m`. `h` and `l` use the form `name#value@name#value`.
- **`reqcore.logconfig`**: access logging.
  - `configure_logger(LoggerSettings(...))` sends all logging to a file. The
    file rolls over by size, and also at midnight. Backups can be gzip-compressed.
  - `configure_logger` returns the access logger. That logger skips the paths
    listed in `skip_paths`.
  - `AccessLogFormatter` writes one line per request for records that carry a
    `status` field.
- **`reqcore.params`**: `ParamsModel` and `DictionaryModel` look up values by
  name. The `SecurityModule` protocol describes the operations of a card
  security module.
- **`reqcore.errors`**: `join` and `append` chain errors into a `JoinedError`.
  The wrapped errors stay available in its `errors` attribute.

## Installation

```
pip install reqcore
```

Python 3.10 or later is required. The only runtime dependency is `requests`.

## Examples

Basic-auth credentials:

```python
from reqcore.callapi import basic_auth

basic_auth("user", "password")   # 'dXNlcjpwYXNzd29yZA=='
```

Copying a value under a new name:

```python
from reqcore.consume import extract_value

headers = {}
extract_value("bankCode#Bank-Code", lambda name: {"bankCode": "017"}[name], headers)
headers   # {'Bank-Code': '017'}
```

Checking page parameters:

```python
from reqcore.query import parse_page_params

parse_page_params({"page": "2"})   # {'page': 2, 'size': 10}
parse_page_params({"size": "500"}) # raises PaginationError
```

Sorting and slicing rows:

```python
from reqcore.query import PaginationData, paginate

rows = [{"id": "b"}, {"id": "a"}, {"id": "c"}]
paginate(PaginationData(start=0, end=2, sort="id"), rows, lambda f: lambda r: r[f])
# [{'id': 'a'}, {'id': 'b'}]
```

Checking a padded IP address:

```python
from reqcore.validation import is_padded_ip

is_padded_ip("192.168.001.010")   # True
is_padded_ip("192.168.1.10")      # False: every octet needs three digits
```

Chaining an error with context:

```python
from reqcore.errors import join

err = join(ValueError("bad input"), "error in %s", "create_user")
str(err)   # 'bad input; error in create_user'
```

## What the package does not do

- It has no web server and no binding to any web framework. A real parser has
  to be supplied by the caller. Such a parser needs `framework`,
  `get_header_value`, `get_local_string` and `set_local`, as `TestingParser`
  has.
- It has no complete request handlers.
- It does not run database queries and does not store request logs. The query
  helpers work on rows that the caller has already fetched.

## Running the tests

```
pip install "reqcore[test]"
pytest
```