"""
Flatten filesystem paths into single tokens.

Profile artifacts for objects built in different directories are staged
side by side in one directory, so their names must not contain separators
while still telling the directories apart. The encoding matches the one the
compiler uses for -fprofile-use=<dir> lookups.
"""

import os


PARENT_MARKER = "^"
SEPARATOR_MARKER = "#"
PROFILE_EXTENSION = ".gcda"


def mangle_path(path: str) -> str:
    segments = tuple(path.split("/"))
    last_index = len(segments) - 1

    pieces: list[str] = []
    for index, segment in enumerate(segments):
        is_last = index == last_index

        # A "./" segment vanishes along with its separator.
        if segment == "." and not is_last:
            continue

        pieces.append(PARENT_MARKER if segment == ".." else segment)

        if not is_last:
            pieces.append(SEPARATOR_MARKER)

    return "".join(pieces)


def strip_extension(path: str) -> str:
    _, extension = os.path.splitext(os.path.basename(path))

    if not extension or extension == ".":
        return path

    return path[: len(path) - len(extension)]
