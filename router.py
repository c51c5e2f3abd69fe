"""Routing table for exact and mounted (prefix) handlers."""

from collections.abc import Callable

from request import HTTPRequest
from response import HTTPResponse

Handler = Callable[[HTTPRequest], HTTPResponse]


class Router:
    def __init__(self) -> None:
        self._routes: dict[tuple[str, str], Handler] = {}
        self._mounts: list[tuple[str, Handler]] = []

    def add_route(self, method: str, path: str, handler: Handler) -> None:
        normalized_method = method.upper().strip()
        if not normalized_method:
            raise ValueError("method cannot be empty")
        if not path.startswith("/"):
            raise ValueError("path must start with '/'")
        self._routes[(normalized_method, path)] = handler

    def mount(self, prefix: str, handler: Handler) -> None:
        """Send every method for paths below ``prefix`` to ``handler``."""
        if not prefix.startswith("/"):
            raise ValueError("path must start with '/'")
        normalized = prefix.rstrip("/")
        if not normalized:
            raise ValueError("mount prefix cannot be the root path")
        self._mounts.append((normalized, handler))
        # Longest prefix wins.
        self._mounts.sort(key=lambda item: len(item[0]), reverse=True)

    def resolve(self, method: str, path: str) -> Handler | None:
        normalized_method = method.upper().strip()
        handler = self._routes.get((normalized_method, path))
        if handler is not None:
            return handler
        for prefix, mounted in self._mounts:
            if path.startswith(prefix + "/"):
                return mounted
        return None
