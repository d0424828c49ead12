"""package.json reading, writing and in-place dependency updates."""

import json
import logging
import re

from .errors import ManifestError
from .models import Manifest
from .versions import caret

logger = logging.getLogger(__name__)

DEPENDENCIES = "dependencies"
DEV_DEPENDENCIES = "devDependencies"

_EXACT_PIN_RE = re.compile(r"^=?\s*v?\d+\.\d+\.\d+$")


def parse_package_json(content: str) -> Manifest:
    """Parse package.json content into Manifest.

    Args:
        content: The package.json file content

    Returns:
        Parsed Manifest object

    Raises:
        ManifestError: If the content is not a JSON object or a dependency
            bucket is not an object
    """
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise ManifestError(f"Invalid package.json: {e}") from e

    return manifest_from_dict(data)


def manifest_from_dict(data: dict) -> Manifest:
    """Build a Manifest from an already decoded package.json object."""
    if not isinstance(data, dict):
        raise ManifestError("package.json must contain a JSON object")

    buckets = {}
    for key in (DEPENDENCIES, DEV_DEPENDENCIES):
        bucket = data.get(key) or {}
        if not isinstance(bucket, dict):
            raise ManifestError(f"'{key}' must be an object, got {type(bucket).__name__}")
        buckets[key] = dict(bucket)

    known = {"name", "version", DEPENDENCIES, DEV_DEPENDENCIES}
    return Manifest(
        name=data.get("name", ""),
        version=data.get("version", ""),
        dependencies=buckets[DEPENDENCIES],
        dev_dependencies=buckets[DEV_DEPENDENCIES],
        extra={key: value for key, value in data.items() if key not in known},
        key_order=list(data.keys()),
    )


def manifest_to_dict(manifest: Manifest) -> dict:
    """Rebuild the package.json object, keeping the original key order."""
    values = dict(manifest.extra)
    values["name"] = manifest.name
    values["version"] = manifest.version
    values[DEPENDENCIES] = manifest.dependencies
    values[DEV_DEPENDENCIES] = manifest.dev_dependencies

    result = {}
    for key in manifest.key_order:
        if key in values:
            result[key] = values.pop(key)

    # Keys the original file did not have: only emit them when non-empty
    for key, value in values.items():
        if key in ("name", "version") and not value:
            continue
        if key in (DEPENDENCIES, DEV_DEPENDENCIES) and not value:
            continue
        result[key] = value
    return result


def dump_package_json(manifest: Manifest) -> str:
    return json.dumps(manifest_to_dict(manifest), indent=2, ensure_ascii=False) + "\n"


def get_all_dependencies(manifest: Manifest) -> dict[str, str]:
    """Union of production and dev dependencies; dev wins on collision."""
    return {**manifest.dependencies, **manifest.dev_dependencies}


def is_dev_dependency(manifest: Manifest, name: str) -> bool:
    return name in manifest.dev_dependencies


def update_dependency(manifest: Manifest, name: str, spec: str, is_dev: bool) -> None:
    """Write ``spec`` into the bucket selected by ``is_dev``.

    The entry is not removed from the other bucket if it is present there.
    """
    bucket = manifest.dev_dependencies if is_dev else manifest.dependencies
    old_spec = bucket.get(name)
    bucket[name] = spec

    logger.info(
        "Updated %s in %s: %s -> %s",
        name,
        DEV_DEPENDENCIES if is_dev else DEPENDENCIES,
        old_spec,
        spec,
    )


def find_duplicate_classifications(manifest: Manifest) -> list[str]:
    """Names declared in both dependencies and devDependencies."""
    return sorted(set(manifest.dependencies) & set(manifest.dev_dependencies))


def is_exact_pin(spec: str) -> bool:
    return bool(_EXACT_PIN_RE.match(spec.strip()))


def rewrite_spec(current_spec: str | None, version: str, preserve_exact_pins: bool = False) -> str:
    """Spec to write for an automatically chosen version.

    Always caret-relaxed, except that exact pins stay exact when
    ``preserve_exact_pins`` is set.
    """
    if preserve_exact_pins and current_spec and is_exact_pin(current_spec):
        return version
    return caret(version)
