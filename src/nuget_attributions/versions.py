"""Expansion of NuGet version specifiers into literal versions.

NuGet references may use interval notation such as ``[1.0,2.0)``. The
registry is only ever queried with literal versions, so the brackets are
stripped and each listed bound becomes a version to look up. This does not
resolve ranges against published versions.
"""

from typing import Iterator

_BRACKETS = "[]()"


class VersionSpec:
    """Restartable, lazy sequence of the literal versions in a specifier.

    Example::

        >>> list(VersionSpec("[4.1.0,4.3.0]"))
        ['4.1.0', '4.3.0']
        >>> list(VersionSpec("(,4.1.0)"))
        ['4.1.0']
    """

    def __init__(self, spec: str) -> None:
        self.spec = spec or ""

    def __iter__(self) -> Iterator[str]:
        stripped = self.spec.strip().strip(_BRACKETS)
        for token in stripped.split(","):
            token = token.strip()
            if token:
                yield token

    def __repr__(self) -> str:
        return f"VersionSpec({self.spec!r})"


def expand_version_spec(spec: str) -> list[str]:
    """Return the literal versions named by a version specifier."""
    return list(VersionSpec(spec))
