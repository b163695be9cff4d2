from __future__ import annotations

import json
import os
import shutil
import tempfile
from pathlib import Path
from typing import Iterable

from press.errors import RollbackError, WriteError
from press.log import get_logger
from press.types import ParsedFile, SourceFile, WriteReport

log = get_logger("writer")

STATE_DIR = ".press"
ROLLBACK_DIR = "rollback"
ROLLBACK_MANIFEST = "rollback.json"
RAW_RESPONSE_LOG = "raw_response.log"


def state_dir(output_directory: str | Path) -> Path:
    return Path(output_directory) / STATE_DIR


def rollback_dir(output_directory: str | Path) -> Path:
    return state_dir(output_directory) / ROLLBACK_DIR


def atomic_write_text(path: Path, content: str) -> None:
    """Write via a temp file in the same directory, then swap it in."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(content)
        if path.exists():
            shutil.copymode(path, tmp_name)
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise


def _inside(path: Path, root: Path) -> bool:
    try:
        path.resolve().relative_to(root.resolve())
        return True
    except ValueError:
        return False


def resolve_destination(
    parsed: ParsedFile,
    *,
    sources_by_path: dict[str, SourceFile],
    output_directory: Path,
    auto: bool,
) -> Path:
    if auto and not parsed.untagged and parsed.relative_path in sources_by_path:
        return sources_by_path[parsed.relative_path].disk_path
    dest = output_directory / parsed.relative_path
    if not _inside(dest, output_directory):
        raise WriteError(parsed.relative_path, "destination escapes the output directory")
    return dest


def write_outputs(
    files: Iterable[ParsedFile],
    *,
    sources: Iterable[SourceFile],
    output_directory: str | Path,
    auto: bool = False,
    keep_backups: bool = True,
) -> WriteReport:
    """
    Write every parsed file, continuing past individual failures.

    auto=True overwrites the matching source file in place; anything else
    (and anything without a matching source) lands under output_directory.
    Existing files are overwritten without asking. When keep_backups is set,
    overwritten content is saved so rollback_last_run() can undo the run.
    """
    out_dir = Path(output_directory)
    sources_by_path = {s.path: s for s in sources}
    report = WriteReport()

    backup_root = rollback_dir(out_dir) / "files"
    if keep_backups and rollback_dir(out_dir).exists():
        shutil.rmtree(rollback_dir(out_dir))

    for parsed in files:
        try:
            dest = resolve_destination(
                parsed, sources_by_path=sources_by_path, output_directory=out_dir, auto=auto
            )
            existed = dest.exists()
            if keep_backups and existed:
                backup = backup_root / parsed.relative_path
                backup.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(dest, backup)
                report.backups.append((dest, backup))
            atomic_write_text(dest, parsed.content)
        except WriteError as e:
            log.error("%s", e)
            report.failed[parsed.relative_path] = e.reason
            continue
        except OSError as e:
            err = WriteError(parsed.relative_path, e.strerror or str(e))
            log.error("%s", err)
            report.failed[parsed.relative_path] = err.reason
            continue

        report.written.append(dest)
        if not existed:
            report.new_files.append(dest)
        log.debug("Wrote %s", dest)

    if keep_backups and (report.written or report.backups):
        save_rollback_manifest(out_dir, report)
    return report


def save_rollback_manifest(output_directory: str | Path, report: WriteReport) -> Path:
    path = rollback_dir(output_directory) / ROLLBACK_MANIFEST
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        "new_files": [str(p.resolve()) for p in report.new_files],
        "rollback_files": [[str(o.resolve()), str(b.resolve())] for o, b in report.backups],
    }
    path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
    return path


def rollback_last_run(output_directory: str | Path) -> list[str]:
    """
    Undo the last run that wrote into output_directory: delete the files it
    created and restore the ones it overwrote. Returns a line per action.
    """
    rdir = rollback_dir(output_directory)
    manifest = rdir / ROLLBACK_MANIFEST
    if not manifest.exists():
        raise RollbackError("No changes to rollback")

    try:
        data = json.loads(manifest.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise RollbackError(f"Could not read rollback manifest {manifest}: {e}") from e

    actions: list[str] = []
    try:
        for new_file in data.get("new_files", []):
            p = Path(new_file)
            if p.exists():
                p.unlink()
                actions.append(f"Deleted new file: {p}")

        for original, backup in data.get("rollback_files", []):
            o, b = Path(original), Path(backup)
            if b.exists():
                o.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(b, o)
                actions.append(f"Restored: {o}")
            else:
                log.warning("Backup missing for %s: %s", o, b)
    except OSError as e:
        raise RollbackError(f"Rollback failed: {e}") from e

    shutil.rmtree(rdir)
    return actions


def save_raw_response(output_directory: str | Path, text: str) -> Path:
    path = state_dir(output_directory) / RAW_RESPONSE_LOG
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path
