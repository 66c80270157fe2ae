"""Environment variable formatting helpers."""

from typing import Dict, Iterable, List, Mapping, Optional


def format_env(env: Optional[Mapping[str, str]]) -> List[str]:
    """Render ``env`` as sorted ``NAME=VALUE`` strings."""
    if not env:
        return []
    return sorted(f"{name}={value}" for name, value in env.items())


def parse_env(entries: Iterable[str]) -> Dict[str, str]:
    """Parse ``NAME=VALUE`` strings into a mapping.

    The first ``=`` separates name from value, so ``DOUBLE=one=1`` keeps
    ``one=1``. An entry without ``=`` gets an empty value. Later entries
    override earlier ones with the same name.
    """
    env: Dict[str, str] = {}
    for entry in entries:
        name, _, value = entry.partition("=")
        env[name] = value
    return env
