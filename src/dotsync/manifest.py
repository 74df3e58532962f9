"""Mapping manifest shipped with a dotfiles template."""

import json
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any, Dict, List, Optional, Tuple

from .exceptions import DotsyncConfigError
from .models import Category, PathMapping, Platform, SetupTask

TASK_PHASES = ("init", "update", "always")


@dataclass
class Manifest:
    """Parsed manifest: path overrides, template variables and setup tasks."""

    mappings: Dict[str, PathMapping] = field(default_factory=dict)
    variables: Dict[str, Any] = field(default_factory=dict)
    tasks: List[SetupTask] = field(default_factory=list)

    def lookup(self, source_key: str) -> Optional[PathMapping]:
        return self.mappings.get(source_key)

    def resolve_target(self, source_key: str, home: Path) -> Optional[Path]:
        """Return the custom destination for ``source_key``, if one is mapped."""
        mapping = self.lookup(source_key)
        if mapping is None:
            return None
        return expand_target(mapping.target, home)


def expand_target(target: str, home: Path) -> Path:
    """Expand ``~`` against ``home``; relative targets are relative to home."""
    if target == "~":
        return home
    if target.startswith("~/") or target.startswith("~\\"):
        return home / target[2:]
    path = Path(target)
    if path.is_absolute():
        return path
    return home / path


def normalize_key(key: Any) -> str:
    """Normalize a category-qualified source path, e.g. ``common/.zshrc``."""
    if not isinstance(key, str) or not key.strip():
        raise DotsyncConfigError(f"Mapping source must be a non-empty string: {key!r}")
    path = PurePosixPath(key.strip().replace("\\", "/"))
    if path.is_absolute() or ".." in path.parts:
        raise DotsyncConfigError(f"Mapping source must be a relative path: {key!r}")
    categories = {c.value for c in Category}
    if len(path.parts) < 2 or path.parts[0] not in categories:
        raise DotsyncConfigError(
            f"Mapping source '{key}' must start with one of "
            f"{', '.join(sorted(categories))}"
        )
    return path.as_posix()


def _reject_duplicate_keys(pairs: List[Tuple[str, Any]]) -> Dict[str, Any]:
    result: Dict[str, Any] = {}
    for key, value in pairs:
        if key in result:
            raise DotsyncConfigError(f"Duplicate key in manifest: '{key}'")
        result[key] = value
    return result


def _iter_mapping_entries(raw: Any) -> List[Tuple[Any, Any]]:
    if isinstance(raw, dict):
        return list(raw.items())
    if isinstance(raw, list):
        entries = []
        for item in raw:
            if not isinstance(item, dict) or set(item) != {"source", "target"}:
                raise DotsyncConfigError(
                    "Mapping list entries must be objects with 'source' and 'target'"
                )
            entries.append((item["source"], item["target"]))
        return entries
    raise DotsyncConfigError("'mappings' must be an object or a list")


def parse_mappings(raw: Any) -> Dict[str, PathMapping]:
    mappings: Dict[str, PathMapping] = {}
    for source, target in _iter_mapping_entries(raw):
        key = normalize_key(source)
        if not isinstance(target, str) or not target.strip():
            raise DotsyncConfigError(
                f"Mapping target for '{source}' must be a non-empty string"
            )
        if key in mappings:
            raise DotsyncConfigError(f"Duplicate mapping for '{key}'")
        mappings[key] = PathMapping(source=key, target=target.strip())
    return mappings


def parse_tasks(raw: Any) -> List[SetupTask]:
    if not isinstance(raw, list):
        raise DotsyncConfigError("'tasks' must be a list")

    tasks = []
    for item in raw:
        if isinstance(item, str):
            item = {"command": item}
        if not isinstance(item, dict) or not isinstance(item.get("command"), str):
            raise DotsyncConfigError(f"Invalid task entry: {item!r}")

        platforms = item.get("platforms", [p.value for p in Platform])
        try:
            parsed_platforms = tuple(Platform(p) for p in platforms)
        except (TypeError, ValueError):
            raise DotsyncConfigError(
                f"Invalid platforms for task '{item['command']}': {platforms!r}"
            )

        when = item.get("when", "init")
        if when not in TASK_PHASES:
            raise DotsyncConfigError(
                f"Invalid 'when' for task '{item['command']}': {when!r}"
            )
        tasks.append(
            SetupTask(command=item["command"], platforms=parsed_platforms, when=when)
        )
    return tasks


def parse_manifest(text: str) -> Manifest:
    """Parse manifest JSON text, rejecting ambiguous or malformed content."""
    try:
        data = json.loads(text, object_pairs_hook=_reject_duplicate_keys)
    except json.JSONDecodeError as e:
        raise DotsyncConfigError(f"Invalid manifest JSON: {e}")

    if not isinstance(data, dict):
        raise DotsyncConfigError("Manifest must be a JSON object")

    variables = data.get("variables", {})
    if not isinstance(variables, dict):
        raise DotsyncConfigError("'variables' must be an object")

    return Manifest(
        mappings=parse_mappings(data.get("mappings", {})),
        variables=variables,
        tasks=parse_tasks(data.get("tasks", [])),
    )


def load_manifest(path: Path) -> Manifest:
    """Load the manifest at ``path``; a missing file is an empty manifest."""
    if not path.exists():
        return Manifest()
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise DotsyncConfigError(f"Cannot read manifest {path}: {e}")
    return parse_manifest(text)
