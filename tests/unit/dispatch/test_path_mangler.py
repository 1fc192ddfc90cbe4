"""
Test: Path mangling for staged profile artifacts

1. Parent segments become the parent marker
2. A "./" segment disappears along with its separator
3. Every other separator becomes the separator marker
4. Distinct directories never produce the same token
5. Extension stripping only touches the final component

Run with: pytest tests/unit/dispatch/test_path_mangler.py
"""

import pytest

from compilefarm.dispatch.path_mangler import (
    PARENT_MARKER,
    SEPARATOR_MARKER,
    mangle_path,
    strip_extension,
)


@pytest.mark.parametrize(
    "path,expected",
    [
        ("../foo/bar", "^#foo#bar"),
        ("./foo", "foo"),
        ("/a/b", "#a#b"),
        ("a/./b", "a#b"),
        ("a//b", "a##b"),
        ("a/", "a#"),
        ("../../x", "^#^#x"),
        ("foo", "foo"),
        ("", ""),
    ],
)
def test_mangle_examples(path: str, expected: str):
    assert mangle_path(path) == expected


def test_mangled_token_has_no_separators():
    for path in ("/home/u/build/obj/foo", "../src/./a/b", "./x/../y"):
        assert "/" not in mangle_path(path)


def test_distinct_directories_stay_distinct():
    paths = [
        "a/b/c",
        "a/bc",
        "ab/c",
        "../a/b",
        "/a/b",
        "a/b",
    ]

    tokens = {mangle_path(path) for path in paths}

    assert len(tokens) == len(paths)


def test_lone_dot_is_kept():
    """Only a dot followed by a separator is dropped."""
    assert mangle_path(".") == "."
    assert mangle_path("a/.") == "a#."


def test_markers_are_single_characters():
    assert len(PARENT_MARKER) == 1
    assert len(SEPARATOR_MARKER) == 1
    assert PARENT_MARKER != SEPARATOR_MARKER


@pytest.mark.parametrize(
    "path,expected",
    [
        ("obj/foo.o", "obj/foo"),
        ("/abs/dir/foo.o", "/abs/dir/foo"),
        ("foo.tar.gz", "foo.tar"),
        ("dir.d/foo", "dir.d/foo"),
        ("foo.", "foo."),
        (".hidden", ".hidden"),
        ("noext", "noext"),
        ("a//b.o", "a//b"),
    ],
)
def test_strip_extension(path: str, expected: str):
    assert strip_extension(path) == expected
