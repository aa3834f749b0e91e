"""Error chaining helpers that keep the wrapped errors reachable."""

from __future__ import annotations


class JoinedError(Exception):
    """An error carrying one or more wrapped errors plus context text."""

    def __init__(self, message: str, *errors: BaseException) -> None:
        super().__init__(message)
        self.message = message
        self.errors: tuple[BaseException, ...] = errors
        if errors:
            self.__cause__ = errors[0]

    def __str__(self) -> str:
        return self.message


def _render(format: str, args: tuple) -> str:
    return format % args if args else format


def join(err: BaseException, format: str, *args) -> JoinedError:
    """Wrap ``err`` with a formatted context message."""
    return JoinedError(f"{err}; {_render(format, args)}", err)


def append(
    err: BaseException | None, err_child: BaseException, format: str, *args
) -> JoinedError:
    """Wrap ``err`` and ``err_child`` together; behaves like ``join`` when ``err`` is None."""
    if err is None:
        return join(err_child, format, *args)
    return JoinedError(f"{err}; {err_child}; {_render(format, args)}", err, err_child)