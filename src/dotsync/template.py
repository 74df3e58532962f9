"""Fetch and render a dotfiles template repository."""

import json
import shutil
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional

from git import GitCommandError, Repo
from jinja2 import Environment, StrictUndefined, TemplateError

from .exceptions import AnswersDict, DotsyncRenderError
from .manifest import parse_manifest
from .models import Category, Platform
from .resolver import matches_patterns

TEMPLATE_SUFFIX = ".jinja"

# Rendered file contents keyed by POSIX path relative to the local root
RenderedTree = Dict[str, bytes]


class TemplateSource:
    """A temporary clone of the template repository."""

    def __init__(self, src: str, workdir: Path, repo: Repo) -> None:
        self.src = src
        self.workdir = workdir
        self.repo = repo

    @classmethod
    def clone(cls, src: str, ref: Optional[str] = None) -> "TemplateSource":
        workdir = Path(tempfile.mkdtemp(prefix="dotsync-template-"))
        try:
            repo = Repo.clone_from(src, str(workdir / "template"))
            if ref:
                repo.git.checkout(ref)
        except GitCommandError as e:
            shutil.rmtree(workdir, ignore_errors=True)
            raise DotsyncRenderError(f"Cannot fetch template {src}: {e}")
        return cls(src, workdir, repo)

    @property
    def path(self) -> Path:
        return Path(self.repo.working_tree_dir)

    @property
    def commit(self) -> str:
        return self.repo.head.commit.hexsha

    def checkout(self, ref: str) -> None:
        try:
            self.repo.git.checkout(ref)
        except GitCommandError as e:
            raise DotsyncRenderError(f"Template revision {ref} not found: {e}")

    def close(self) -> None:
        shutil.rmtree(self.workdir, ignore_errors=True)

    def __enter__(self) -> "TemplateSource":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()


def build_environment() -> Environment:
    return Environment(
        undefined=StrictUndefined,
        keep_trailing_newline=True,
        autoescape=False,  # nosec B701
    )


def render_file(
    env: Environment, path: Path, data: Dict[str, Any], name: str
) -> bytes:
    try:
        text = path.read_text(encoding="utf-8")
        return env.from_string(text).render(**data).encode("utf-8")
    except (TemplateError, UnicodeDecodeError) as e:
        raise DotsyncRenderError(f"Cannot render {name}: {e}")


def template_variables(template_dir: Path, manifest_filename: str) -> Dict[str, Any]:
    """Default variables declared by the template's manifest."""
    manifest_file = template_dir / manifest_filename
    if not manifest_file.exists():
        return {}
    return dict(parse_manifest(manifest_file.read_text(encoding="utf-8")).variables)


def render_tree(
    template_dir: Path,
    platform: Platform,
    data: Dict[str, Any],
    config: Dict[str, Any],
) -> RenderedTree:
    """
    Render the parts of a template relevant to ``platform``.

    Only the manifest, ``common/`` and the host platform folder are emitted;
    the other platform folder never reaches the local tree. ``.jinja`` files
    are rendered with ``data`` and lose their suffix.
    """
    env = build_environment()
    ignore_patterns: List[str] = config.get("ignore_patterns", [])
    rendered: RenderedTree = {}

    manifest_filename = config["manifest_filename"]
    # The manifest itself is never rendered
    if (template_dir / f"{manifest_filename}{TEMPLATE_SUFFIX}").exists():
        raise DotsyncRenderError(
            f"{manifest_filename}{TEMPLATE_SUFFIX} is not supported; "
            f"the manifest must be plain {manifest_filename}"
        )
    manifest_file = template_dir / manifest_filename
    if manifest_file.is_file():
        rendered[manifest_filename] = manifest_file.read_bytes()

    for category in (Category.COMMON, platform.category):
        category_root = template_dir / category.value
        if not category_root.is_dir():
            continue
        for item in sorted(category_root.rglob("*")):
            if item.is_symlink() or not item.is_file():
                continue
            relative = item.relative_to(template_dir)
            if any(matches_patterns(part, ignore_patterns) for part in relative.parts):
                continue
            name = relative.as_posix()
            if name.endswith(TEMPLATE_SUFFIX):
                name = name[: -len(TEMPLATE_SUFFIX)]
                content = render_file(env, item, data, relative.as_posix())
            else:
                content = item.read_bytes()
            if name in rendered:
                raise DotsyncRenderError(
                    f"Template renders '{name}' twice (plain and {TEMPLATE_SUFFIX})"
                )
            rendered[name] = content

    return rendered


def write_tree(local_root: Path, tree: RenderedTree) -> None:
    for name, content in tree.items():
        path = local_root / name
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)
        except OSError as e:
            raise DotsyncRenderError(f"Cannot write rendered file {name}: {e}")


# ============================================================================
# ANSWERS FILE
# ============================================================================


def load_answers(path: Path) -> AnswersDict:
    """Read the answers file recorded by the last render."""
    if not path.exists():
        raise DotsyncRenderError(
            f"Answers file {path.name} not found; was this tree created by dotsync?"
        )
    try:
        with open(path, "r") as f:
            answers = json.load(f)
    except json.JSONDecodeError as e:
        raise DotsyncRenderError(f"Invalid answers file {path}: {e}")
    if not isinstance(answers, dict) or not {"src", "commit"} <= set(answers):
        raise DotsyncRenderError(f"Answers file {path} is missing 'src' or 'commit'")
    answers.setdefault("data", {})
    return answers


def save_answers(path: Path, answers: AnswersDict) -> None:
    with open(path, "w") as f:
        json.dump(answers, f, indent=2, sort_keys=True)
        f.write("\n")


def merge_data(*layers: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Overlay variable layers; later layers win."""
    data: Dict[str, Any] = {}
    for layer in layers:
        if layer:
            data.update(layer)
    return data
