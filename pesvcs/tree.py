"""Tree objects: directory listings stored in the object store."""

from __future__ import annotations

import os
import re
import stat
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from .index import Index, IndexEntry
from .objects import HASH_SIZE, ObjectError, ObjectStore, ObjectType

MODE_FILE = 0o100644
MODE_EXEC = 0o100755
MODE_DIR = 0o040000

_MAX_MODE_LEN = 15
_OCTAL_PREFIX = re.compile(rb"\s*([+-]?)([0-7]*)")


class TreeError(Exception):
    """Raised when a tree cannot be parsed or built."""


@dataclass
class TreeEntry:
    """One named entry of a tree: a file or a subdirectory."""

    mode: int
    name: str
    hash: bytes


@dataclass
class Tree:
    """An ordered collection of tree entries."""

    entries: list[TreeEntry] = field(default_factory=list)

    @classmethod
    def parse(cls, data: bytes) -> "Tree":
        """Decode the binary ``<mode> <name>\\0<hash>`` entry sequence."""
        raw = bytes(data)
        end = len(raw)
        pos = 0
        entries: list[TreeEntry] = []
        while pos < end:
            space = raw.find(b" ", pos)
            if space < 0:
                raise TreeError("tree entry has no mode separator")
            mode_text = raw[pos:space]
            if len(mode_text) > _MAX_MODE_LEN:
                raise TreeError("tree entry mode is too long")
            mode = _parse_octal(mode_text)

            nul = raw.find(b"\0", space + 1)
            if nul < 0:
                raise TreeError("tree entry name is not terminated")
            name = raw[space + 1:nul].decode("utf-8", errors="surrogateescape")
            pos = nul + 1

            if pos + HASH_SIZE > end:
                raise TreeError("tree entry hash is truncated")
            entries.append(TreeEntry(mode, name, raw[pos:pos + HASH_SIZE]))
            pos += HASH_SIZE
        return cls(entries)

    def serialize(self) -> bytes:
        """Encode the entries, sorted by name, into the binary tree format."""
        ordered = sorted(self.entries, key=lambda e: _name_bytes(e.name))
        return b"".join(
            f"{entry.mode:o} ".encode("ascii") + _name_bytes(entry.name) + b"\0" + bytes(entry.hash)
            for entry in ordered
        )


def _name_bytes(name: str) -> bytes:
    return name.encode("utf-8", errors="surrogateescape")


def _parse_octal(text: bytes) -> int:
    match = _OCTAL_PREFIX.match(text)
    sign, digits = match.group(1), match.group(2)
    value = int(digits, 8) if digits else 0
    return -value if sign == b"-" else value


def get_file_mode(path: str | os.PathLike[str]) -> int:
    """Return the tree mode for ``path``, or 0 if it cannot be examined."""
    try:
        st = os.lstat(path)
    except OSError:
        return 0
    if stat.S_ISDIR(st.st_mode):
        return MODE_DIR
    if st.st_mode & stat.S_IXUSR:
        return MODE_EXEC
    return MODE_FILE


def _write_level(store: ObjectStore, entries: Sequence[IndexEntry], prefix: str) -> bytes:
    tree = Tree()
    i = 0
    while i < len(entries):
        rel = entries[i].path[len(prefix):]
        dir_name, slash, _ = rel.partition("/")
        if not slash:
            tree.entries.append(TreeEntry(entries[i].mode, rel, entries[i].hash))
            i += 1
            continue
        sub_prefix = f"{prefix}{dir_name}/"
        j = i
        while j < len(entries) and entries[j].path.startswith(sub_prefix):
            j += 1
        sub_id = _write_level(store, entries[i:j], sub_prefix)
        tree.entries.append(TreeEntry(MODE_DIR, dir_name, sub_id))
        i = j
    try:
        return store.write(ObjectType.TREE, tree.serialize())
    except ObjectError as exc:
        raise TreeError(f"cannot store tree: {exc}") from exc


def tree_from_index(root: str | os.PathLike[str]) -> bytes:
    """Write the tree objects for the staged files and return the root tree id."""
    index = Index.load(root)
    entries = sorted(index.entries, key=lambda e: e.path)
    if not entries:
        raise TreeError("nothing staged")
    return _write_level(ObjectStore(Path(root)), entries, "")