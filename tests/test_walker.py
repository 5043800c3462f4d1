import os
from pathlib import PurePosixPath

import pytest

from spo.walker import CATEGORY_PATTERNS, classify, enumerate_category, enumerate_files
from tests.conftest import write_tree


def test_enumerate_files_relative_and_sorted(tmp_path):
    write_tree(tmp_path, {
        "z.html": "z",
        "a.html": "a",
        "sub/deep/b.html": "b",
        "sub/c.css": "c",
    })

    found = enumerate_files(tmp_path, ["**/*.html"])
    assert found == [
        PurePosixPath("a.html"),
        PurePosixPath("sub/deep/b.html"),
        PurePosixPath("z.html"),
    ]


def test_enumerate_files_is_stable(tmp_path):
    write_tree(tmp_path, {f"d{i}/f{i}.js": "x" for i in range(10)})
    assert enumerate_files(tmp_path, ["**/*.js"]) == enumerate_files(tmp_path, ["**/*.js"])


def test_enumerate_files_is_case_sensitive(tmp_path):
    write_tree(tmp_path, {"INDEX.HTML": "x", "index.html": "y"})
    assert enumerate_files(tmp_path, ["**/*.html"]) == [PurePosixPath("index.html")]


def test_pattern_without_double_star_matches_top_level_only(tmp_path):
    write_tree(tmp_path, {"a.css": "x", "sub/b.css": "y"})
    assert enumerate_files(tmp_path, ["*.css"]) == [PurePosixPath("a.css")]


def test_missing_root_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        enumerate_files(tmp_path / "nope", ["**/*.html"])


def test_root_that_is_a_file_raises(tmp_path):
    f = tmp_path / "file.txt"
    f.write_text("x")
    with pytest.raises(OSError):
        enumerate_files(f, ["**/*"])


def test_no_matches_is_empty_not_error(tmp_path):
    write_tree(tmp_path, {"readme.txt": "x"})
    assert enumerate_files(tmp_path, ["**/*.html"]) == []


def test_excluded_directory_is_not_walked(tmp_path):
    write_tree(tmp_path, {"a.js": "x", "dist/a.js": "x", "dist/backup/a.js": "x"})
    found = enumerate_files(tmp_path, ["**/*.js"], exclude=[tmp_path / "dist"])
    assert found == [PurePosixPath("a.js")]


def test_exclude_equal_to_root_is_ignored(tmp_path):
    write_tree(tmp_path, {"a.js": "x"})
    assert enumerate_files(tmp_path, ["**/*.js"], exclude=[tmp_path]) == [PurePosixPath("a.js")]


def test_symlinked_directories_are_not_followed(tmp_path):
    root = tmp_path / "site"
    outside = tmp_path / "outside"
    write_tree(root, {"a.css": "x"})
    write_tree(outside, {"b.css": "y"})
    try:
        os.symlink(outside, root / "linked", target_is_directory=True)
        os.symlink(root, root / "loop", target_is_directory=True)
    except (OSError, NotImplementedError):
        pytest.skip("symlinks not supported")

    assert enumerate_files(root, ["**/*.css"]) == [PurePosixPath("a.css")]


def test_symlinked_file_outside_root_is_skipped(tmp_path):
    root = tmp_path / "site"
    write_tree(root, {"a.js": "x"})
    write_tree(tmp_path, {"secret.js": "s"})
    try:
        os.symlink(tmp_path / "secret.js", root / "secret.js")
        os.symlink(root / "a.js", root / "alias.js")
    except (OSError, NotImplementedError):
        pytest.skip("symlinks not supported")

    assert enumerate_files(root, ["**/*.js"]) == [PurePosixPath("a.js"), PurePosixPath("alias.js")]


def test_image_category_covers_all_formats(tmp_path):
    names = ["a.jpg", "b.jpeg", "c.png", "d.gif", "e.svg", "f.webp", "g.bmp"]
    write_tree(tmp_path, {n: b"x" for n in names})
    found = [p.as_posix() for p in enumerate_category(tmp_path, "image")]
    assert found == names[:-1]


def test_dotfiles_and_dot_directories_are_skipped(tmp_path):
    root = write_tree(tmp_path / "site", {
        "a.js": "1",
        ".hidden.js": "1",
        ".git/hooks/x.js": "1",
        "sub/.cache/y.js": "1",
        "sub/z.js": "1",
    })

    assert enumerate_files(root, ("**/*.js",)) == [PurePosixPath("a.js"), PurePosixPath("sub/z.js")]
    assert enumerate_files(root, (".git/**/*.js",)) == [PurePosixPath(".git/hooks/x.js")]


@pytest.mark.parametrize(
    "path, expected",
    [
        ("index.html", "html"),
        ("css/site.css", "css"),
        ("js/app.js", "js"),
        ("img/logo.svg", "image"),
        ("img/photo.jpeg", "image"),
        ("notes.txt", None),
        ("PAGE.HTML", None),
        (".eslintrc.js", None),
        (".well-known/page.html", None),
    ],
)
def test_classify(path, expected):
    assert classify(path) == expected


def test_every_category_has_patterns():
    assert set(CATEGORY_PATTERNS) == {"html", "css", "js", "image"}
