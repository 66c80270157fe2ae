"""Ordered pattern router for simulated commands."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Iterator, List, Mapping, Optional, Union

from .pattern import WILDCARD, Pattern

if TYPE_CHECKING:
    from .command import FuncCmd

CmdFunc = Callable[["FuncCmd"], int]


@dataclass(frozen=True)
class Route:
    """A pattern and the handler it selects."""

    pattern: Pattern
    handler: CmdFunc


class Mux:
    """Routes commands to handlers.

    Routes are tried in registration order and the first match wins, so
    register specific patterns before general ones.

    Example:
        mux = Mux()

        @mux.route("git", "status")
        def git_status(cmd):
            cmd.write_stdout("On branch main\\n")
            return 0
    """

    def __init__(self) -> None:
        self._routes: List[Route] = []

    @classmethod
    def from_mapping(cls, funcs: Mapping[str, CmdFunc]) -> "Mux":
        """Build a mux of exact-name routes.

        A ``"*"`` entry is always registered last so it never shadows a
        specific name.
        """
        mux = cls()
        fallback: Optional[CmdFunc] = None
        for name, handler in funcs.items():
            if name == WILDCARD:
                fallback = handler
                continue
            mux.handle(Pattern.name(name), handler)
        if fallback is not None:
            mux.handle(Pattern.all(), fallback)
        return mux

    def handle(self, pattern: Union[Pattern, str], handler: CmdFunc) -> None:
        """Append a route. Strings are parsed with :meth:`Pattern.parse`."""
        if isinstance(pattern, str):
            pattern = Pattern.parse(pattern)
        self._routes.append(Route(pattern, handler))

    def route(self, cmd: str, *args: str) -> Callable[[CmdFunc], CmdFunc]:
        """Decorator form of :meth:`handle`."""

        def decorator(handler: CmdFunc) -> CmdFunc:
            self.handle(Pattern.new(cmd, *args), handler)
            return handler

        return decorator

    def find_handler(self, cmd: "FuncCmd") -> Optional[CmdFunc]:
        for route in self._routes:
            if route.pattern.matches(cmd):
                return route.handler
        return None

    def names(self) -> List[str]:
        """Command strings of every non-wildcard route, in order."""
        return [r.pattern.cmd for r in self._routes if not r.pattern.is_wildcard]

    def has_wildcard(self) -> bool:
        return any(r.pattern.is_wildcard for r in self._routes)

    def routes(self) -> List[Route]:
        return list(self._routes)

    def __iter__(self) -> Iterator[Route]:
        return iter(self._routes)

    def __len__(self) -> int:
        return len(self._routes)


__all__ = ["CmdFunc", "Mux", "Route"]
