"""Patterns that decide which handler serves a simulated command."""

from __future__ import annotations

import posixpath
import shlex
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Tuple

if TYPE_CHECKING:
    from .command import FuncCmd

WILDCARD = "*"


class PatternKind(Enum):
    """Pattern variants."""

    ALL = "all"
    NAME = "name"
    NAME_ARGS = "name_args"


@dataclass(frozen=True)
class Pattern:
    """Matches a command by name and, optionally, a set of required arguments.

    Names compare by basename, so ``Pattern.name("/usr/bin/git")`` and
    ``Pattern.name("git")`` both match a command resolved to ``/opt/git``.
    Arguments use set semantics: each pattern argument must appear somewhere
    after the program name, in any order, and extra arguments are allowed.
    """

    kind: PatternKind
    cmd: str = WILDCARD
    args: Tuple[str, ...] = ()

    @classmethod
    def all(cls) -> "Pattern":
        return cls(PatternKind.ALL)

    @classmethod
    def name(cls, cmd: str) -> "Pattern":
        if cmd == WILDCARD:
            return cls.all()
        return cls(PatternKind.NAME, cmd)

    @classmethod
    def new(cls, cmd: str, *args: str) -> "Pattern":
        """Build a pattern; ``"*"`` matches every command and ignores args."""
        if cmd == WILDCARD:
            return cls.all()
        if args:
            return cls(PatternKind.NAME_ARGS, cmd, tuple(args))
        return cls(PatternKind.NAME, cmd)

    @classmethod
    def parse(cls, text: str) -> "Pattern":
        """Build a pattern from a shell-style string such as ``"git status"``."""
        parts = shlex.split(text)
        if not parts:
            raise ValueError("Pattern cannot be empty")
        return cls.new(parts[0], *parts[1:])

    @property
    def is_wildcard(self) -> bool:
        return self.kind is PatternKind.ALL

    def matches(self, cmd: "FuncCmd") -> bool:
        if self.kind is PatternKind.ALL:
            return True

        if posixpath.basename(self.cmd) != posixpath.basename(cmd.path):
            return False

        if self.kind is PatternKind.NAME_ARGS:
            present = set(cmd.args[1:])
            return all(arg in present for arg in self.args)

        return True

    def __str__(self) -> str:
        if self.kind is PatternKind.ALL:
            return WILDCARD
        return " ".join((self.cmd, *self.args))


__all__ = ["Pattern", "PatternKind", "WILDCARD"]
