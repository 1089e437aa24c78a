"""Filesystem discovery for the routes/ and static/ trees.

Walks a directory depth-first. Within each directory, files come before
subdirectories and both are sorted by name, so a directory's ``_data``
and ``_middleware`` files are always seen before anything nested below
them. Hidden entries (``.git``, ``.DS_Store``) and ``__pycache__`` are
skipped.

Python route files are imported as modules; their public names are the
file's explicit exports.
"""

import importlib.util
import inspect
from pathlib import Path
from typing import Any

from nadder.errors import ConfigurationError
from nadder.indexing.types import RENDER_EXPORTS, RouteFile
from nadder.routing.route import HTTP_METHODS

_SKIPPED_DIRS = frozenset({"__pycache__", "node_modules"})

# Callable exports that mean something to the indexer
_CALLABLE_EXPORTS = frozenset({*HTTP_METHODS, *RENDER_EXPORTS})


def walk_directory(root: str | Path) -> list[RouteFile]:
    """Return every file under *root* with its content.

    Raises ``FileNotFoundError`` if *root* is not a directory.
    """
    root = Path(root).resolve()
    if not root.is_dir():
        raise FileNotFoundError(f"Directory not found: {root}")
    files: list[RouteFile] = []
    _walk(root, root, files)
    return files


def _walk(directory: Path, root: Path, files: list[RouteFile]) -> None:
    entries = sorted(directory.iterdir(), key=lambda p: p.name)
    for item in entries:
        if item.name.startswith(".") or not item.is_file():
            continue
        pathname = "/" + item.relative_to(root).as_posix()
        files.append(RouteFile(pathname=pathname, path=item, content=item.read_bytes()))
    for item in entries:
        if item.name.startswith(".") or item.name in _SKIPPED_DIRS or not item.is_dir():
            continue
        _walk(item, root, files)


def load_module_exports(file: RouteFile) -> dict[str, Any]:
    """Import a ``.py`` route file and collect its exports.

    Handlers (HTTP-method names, ``default``, ``handler``) are kept when
    callable; other public names are kept when they are plain values,
    so imported modules and helper functions don't leak into page data.
    """
    module_name = f"_nadder_route_{abs(hash(file.pathname)):x}"
    spec = importlib.util.spec_from_file_location(module_name, file.path)
    if spec is None or spec.loader is None:
        msg = f"Cannot import route module {file.pathname}"
        raise ConfigurationError(msg)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)

    exports: dict[str, Any] = {}
    for name, value in vars(module).items():
        if name.startswith("_"):
            continue
        if name in _CALLABLE_EXPORTS or name in ("pattern", "method"):
            exports[name] = value
        elif type(value).__module__ == "__future__":
            continue
        elif not (inspect.ismodule(value) or inspect.isclass(value) or callable(value)):
            exports[name] = value
    return exports
