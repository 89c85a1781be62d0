"""Dotted version string helpers shared by documents and releases."""

import re

_LEADING_DIGITS = re.compile(r"\d+")


def _parts(version: str) -> list[int]:
    parts = []
    for chunk in version.strip().split("."):
        match = _LEADING_DIGITS.match(chunk.strip())
        parts.append(int(match.group()) if match else 0)
    return parts


def compare_versions(v1: str, v2: str) -> int:
    """Compare two dotted version strings numerically.

    Missing trailing components count as zero, so ``"1.2"`` equals
    ``"1.2.0"``. Non-numeric components also count as zero.

    Returns:
        -1 if v1 < v2, 0 if equal, 1 if v1 > v2
    """
    parts1 = _parts(v1)
    parts2 = _parts(v2)
    length = max(len(parts1), len(parts2))
    parts1 += [0] * (length - len(parts1))
    parts2 += [0] * (length - len(parts2))

    for p1, p2 in zip(parts1, parts2):
        if p1 < p2:
            return -1
        if p1 > p2:
            return 1
    return 0


def increment_version(version: str) -> str:
    """Bump the last component of a dotted version.

    A single-component version gains a minor part: ``"2"`` becomes ``"3.0"``.
    ``"1.0"`` becomes ``"1.1"`` and ``"1.2.9"`` becomes ``"1.2.10"``.
    """
    parts = _parts(version)
    if len(parts) == 1:
        return f"{parts[0] + 1}.0"
    parts[-1] += 1
    return ".".join(str(p) for p in parts)


def is_newer(candidate: str, installed: str | None) -> bool:
    """Whether ``candidate`` supersedes the installed version (empty = nothing installed)."""
    return not installed or compare_versions(installed, candidate) < 0
