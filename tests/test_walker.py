import pytest

from press.errors import PathNotFound
from press.walker import collect_source_paths, split_path_args


def _touch(path, text="x\n"):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def test_directory_is_walked_in_sorted_order_with_text_extensions(tmp_path):
    _touch(tmp_path / "src" / "b.rs")
    _touch(tmp_path / "src" / "a.py")
    _touch(tmp_path / "src" / "nested" / "c.md")
    _touch(tmp_path / "src" / "image.png")

    walked = collect_source_paths(["src"], cwd=tmp_path)
    assert [w.marker_path for w in walked] == ["src/a.py", "src/b.rs", "src/nested/c.md"]


def test_explicit_file_is_kept_regardless_of_extension(tmp_path):
    _touch(tmp_path / "Makefile")
    walked = collect_source_paths(["Makefile"], cwd=tmp_path)
    assert [w.marker_path for w in walked] == ["Makefile"]


def test_ignore_skips_files_and_directories(tmp_path):
    _touch(tmp_path / "src" / "keep.py")
    _touch(tmp_path / "src" / "skip.py")
    _touch(tmp_path / "src" / "vendor" / "lib.py")

    walked = collect_source_paths(["src"], ["src/skip.py", "src/vendor"], cwd=tmp_path)
    assert [w.marker_path for w in walked] == ["src/keep.py"]


def test_duplicates_are_kept_once(tmp_path):
    _touch(tmp_path / "src" / "a.py")
    walked = collect_source_paths(["src", "src/a.py"], cwd=tmp_path)
    assert len(walked) == 1


def test_missing_path_is_skipped_when_others_resolve(tmp_path):
    _touch(tmp_path / "a.txt")
    walked = collect_source_paths(["a.txt", "nope.txt"], cwd=tmp_path)
    assert [w.marker_path for w in walked] == ["a.txt"]


def test_nothing_resolves_raises(tmp_path):
    with pytest.raises(PathNotFound):
        collect_source_paths(["nope.txt"], cwd=tmp_path)


def test_paths_outside_cwd_are_relative_to_their_root_parent(tmp_path):
    outside = tmp_path / "other"
    _touch(outside / "lib" / "x.rs")
    work = tmp_path / "work"
    work.mkdir()

    walked = collect_source_paths([str(outside)], cwd=work)
    assert [w.marker_path for w in walked] == ["other/lib/x.rs"]


def test_ampersand_separated_values():
    assert split_path_args(["a.rs&b.rs", "c.rs"]) == ["a.rs", "b.rs", "c.rs"]


def test_press_state_directory_is_not_walked(tmp_path):
    _touch(tmp_path / "a.py")
    _touch(tmp_path / ".press" / "rollback" / "rollback.json", "{}")
    walked = collect_source_paths(["."], cwd=tmp_path)
    assert [w.marker_path for w in walked] == ["a.py"]


def test_same_relative_path_from_two_roots_gets_distinct_markers(tmp_path):
    _touch(tmp_path / "x" / "a" / "src" / "m.py")
    _touch(tmp_path / "x" / "b" / "src" / "m.py")
    elsewhere = tmp_path / "elsewhere"
    elsewhere.mkdir()

    walked = collect_source_paths(
        [str(tmp_path / "x" / "a" / "src"), str(tmp_path / "x" / "b" / "src")], cwd=elsewhere
    )
    assert [w.marker_path for w in walked] == ["src/m.py", "b/src/m.py"]
    assert walked[1].disk_path.parent.parent.name == "b"
