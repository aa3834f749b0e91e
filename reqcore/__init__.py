"""Helpers for HTTP request handling: remote API calls, header forwarding, query pagination, validation, request context and access logging."""

__version__ = "0.1.0"