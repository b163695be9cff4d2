from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Iterable

from press.errors import PathNotFound
from press.log import get_logger

log = get_logger("walker")

TEXT_EXTENSIONS = frozenset({
    "txt", "rs", "ts", "js", "go", "json", "py", "cpp", "c", "h", "hpp",
    "css", "html", "md", "yaml", "yml", "toml", "xml", "tsx",
})

# press state (rollback data, raw responses) and VCS internals
SKIP_DIRS = frozenset({".press", ".git"})


@dataclass(frozen=True)
class WalkedPath:
    """A file found on disk plus the relative path used to tag it in prompts."""
    disk_path: Path
    marker_path: str


def split_path_args(values: Iterable[str]) -> list[str]:
    """Accept both repeated values and '&'-joined values (``a.rs&b.rs``)."""
    out: list[str] = []
    for v in values:
        out.extend(p for p in (s.strip() for s in v.split("&")) if p)
    return out


def is_ignored(path: Path, ignored: list[Path]) -> bool:
    resolved = path.resolve()
    for ig in ignored:
        if resolved == ig or ig in resolved.parents:
            return True
    return False


def has_text_extension(path: Path) -> bool:
    return path.suffix.lower().lstrip(".") in TEXT_EXTENSIONS


def marker_path_for(disk_path: Path, root: Path, cwd: Path) -> str:
    """
    Relative path under the working directory when possible,
    otherwise relative to the parent of the user-supplied root.
    """
    resolved = disk_path.resolve()
    try:
        rel = resolved.relative_to(cwd)
    except ValueError:
        base = root.resolve().parent
        try:
            rel = resolved.relative_to(base)
        except ValueError:
            rel = Path(resolved.name)
    return PurePosixPath(*rel.parts).as_posix()


def _widen_marker_path(disk_path: Path, marker_path: str, taken: set[str]) -> str:
    """Prepend parent directory names until the path no longer collides."""
    parts = disk_path.resolve().parts[1:]
    for n in range(len(PurePosixPath(marker_path).parts) + 1, len(parts) + 1):
        candidate = PurePosixPath(*parts[-n:]).as_posix()
        if candidate not in taken:
            return candidate
    return PurePosixPath(*parts).as_posix()


def _walk_dir(directory: Path, ignored: list[Path]) -> list[Path]:
    found: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(directory):
        here = Path(dirpath)
        dirnames[:] = sorted(
            d for d in dirnames if d not in SKIP_DIRS and not is_ignored(here / d, ignored)
        )
        for name in sorted(filenames):
            p = here / name
            if is_ignored(p, ignored):
                continue
            if has_text_extension(p):
                found.append(p)
    return found


def collect_source_paths(
    paths: Iterable[str],
    ignore: Iterable[str] = (),
    *,
    cwd: str | Path | None = None,
) -> list[WalkedPath]:
    """
    Expand files and directories into an ordered, de-duplicated file list.
    Missing paths are skipped with a warning; if nothing resolves at all,
    PathNotFound is raised.
    """
    cwd_p = Path(cwd).resolve() if cwd is not None else Path.cwd().resolve()
    ignored = [(cwd_p / p).resolve() for p in split_path_args(ignore)]
    requested = split_path_args(paths)

    out: list[WalkedPath] = []
    seen: set[Path] = set()
    taken: set[str] = set()

    def add(disk_path: Path, root: Path):
        key = disk_path.resolve()
        if key in seen:
            return
        seen.add(key)
        marker = marker_path_for(disk_path, root, cwd_p)
        if marker in taken:
            wider = _widen_marker_path(disk_path, marker, taken)
            log.warning("Two inputs would both be sent as %s; sending %s as %s", marker, disk_path, wider)
            marker = wider
        taken.add(marker)
        out.append(WalkedPath(disk_path=disk_path, marker_path=marker))

    for raw in requested:
        root = Path(raw)
        if not root.is_absolute():
            root = cwd_p / root
        if root.is_file():
            if is_ignored(root, ignored):
                log.debug("Ignoring %s", raw)
                continue
            add(root, root)
        elif root.is_dir():
            if is_ignored(root, ignored):
                log.debug("Ignoring %s", raw)
                continue
            for f in _walk_dir(root, ignored):
                add(f, root)
        else:
            log.warning("%s", PathNotFound(raw))

    if not out:
        shown = ", ".join(requested) if requested else "(none)"
        raise PathNotFound(shown, f"No files found to process in: {shown}")

    log.debug("Collected %d file(s)", len(out))
    return out
