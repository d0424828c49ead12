"""Semantic version helpers with npm range semantics.

Versions are coerced the way npm's ``semver.coerce`` does it: the first run
of up to three dot-separated numbers found anywhere in the string, with
missing parts defaulting to zero. Ranges are matched with
``semantic_version.NpmSpec``. None of these functions raise on bad input.
"""

import logging
import re

import semantic_version as sv

logger = logging.getLogger(__name__)

_COERCE_RE = re.compile(r"(?:^|[^\d])(\d{1,16})(?:\.(\d{1,16}))?(?:\.(\d{1,16}))?(?:$|[^\d])")


def clean_version(spec: str | None) -> str | None:
    """Coerce a version specifier to ``major.minor.patch``.

    Args:
        spec: Specifier such as ``^1.2.3``, ``~2.0.0`` or ``1.2.x``

    Returns:
        Canonical version string, or None when nothing can be coerced
    """
    if not isinstance(spec, str):
        return None

    match = _COERCE_RE.search(spec)
    if not match:
        logger.debug("Could not coerce version specification %r", spec)
        return None

    major, minor, patch = (int(part or 0) for part in match.groups())
    return str(sv.Version(major=major, minor=minor, patch=patch))


_OPERATOR_GAP_RE = re.compile(r"(<=|>=|<|>|=|~|\^)\s+")
_SPACES_RE = re.compile(r"\s+")


def normalize_range(range_: str) -> str:
    """Tighten whitespace the way node-semver does before parsing.

    ``>= 1.0.0`` becomes ``>=1.0.0`` and runs of spaces collapse to one, so
    hyphen ranges (``1.0.0 - 2.0.0``) and ``||`` unions keep their meaning.
    """
    collapsed = _SPACES_RE.sub(" ", range_.strip())
    return _OPERATOR_GAP_RE.sub(r"\1", collapsed)


def _parse_range(range_: str) -> sv.NpmSpec | None:
    expression = normalize_range(range_) or "*"
    try:
        return sv.NpmSpec(expression)
    except ValueError:
        logger.debug("Unsupported version range %r", range_)
        return None


def satisfies_range(version: str | None, range_: str | None) -> bool:
    """Check whether the coerced ``version`` falls inside an npm range."""
    if not isinstance(range_, str):
        return False

    clean = clean_version(version)
    if clean is None:
        return False

    spec = _parse_range(range_)
    if spec is None:
        return False

    return spec.match(sv.Version(clean))


def _parse_candidates(candidates: list[str]) -> list[tuple[sv.Version, str]]:
    parsed = []
    for candidate in candidates:
        try:
            parsed.append((sv.Version(candidate), candidate))
        except (TypeError, ValueError):
            continue  # Skip versions the registry should never have published
    return parsed


def sort_versions_desc(candidates: list[str]) -> list[str]:
    """Sort version strings newest first by semver precedence.

    Unparsable entries are dropped.
    """
    parsed = _parse_candidates(candidates)
    parsed.sort(key=lambda item: item[0], reverse=True)
    return [original for _, original in parsed]


def find_best_satisfying(candidates: list[str], range_: str | None) -> str | None:
    """Return the highest candidate satisfying ``range_``, or None."""
    if not isinstance(range_, str):
        return None

    spec = _parse_range(range_)
    if spec is None:
        return None

    for version, original in sorted(_parse_candidates(candidates), key=lambda item: item[0], reverse=True):
        if spec.match(version):
            return original
    return None


def caret(version: str) -> str:
    return f"^{version}"
