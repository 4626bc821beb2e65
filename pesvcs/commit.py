"""Commit objects, HEAD handling and history traversal."""

from __future__ import annotations

import os
import re
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

from .objects import (
    HASH_HEX_SIZE,
    PES_DIR,
    ObjectError,
    ObjectStore,
    ObjectType,
    hash_to_hex,
    hex_to_hash,
)
from .tree import TreeError, tree_from_index

HEAD_NAME = "HEAD"
_REF_PREFIX = "ref: "
_DIGITS_PREFIX = re.compile(r"\s*\+?(\d*)")


class CommitError(Exception):
    """Raised when a commit cannot be parsed, created or followed."""


@dataclass
class Commit:
    """A snapshot: root tree, optional parent, author, time and message."""

    tree: bytes
    author: str
    timestamp: int
    message: str
    parent: bytes | None = None

    @classmethod
    def parse(cls, data: bytes | str) -> "Commit":
        """Decode the text commit format."""
        text = data.decode("utf-8", errors="surrogateescape") if isinstance(data, (bytes, bytearray)) else data
        pos = 0

        line, pos = _next_line(text, pos)
        tree = _header_hash(line, "tree ")

        parent = None
        if text.startswith("parent ", pos):
            line, pos = _next_line(text, pos)
            parent = _header_hash(line, "parent ")

        line, pos = _next_line(text, pos)
        if not line.startswith("author ") or len(line) == len("author "):
            raise CommitError("missing author line")
        author, space, stamp = line[len("author "):].rpartition(" ")
        if not space:
            raise CommitError("author line has no timestamp")
        digits = _DIGITS_PREFIX.match(stamp).group(1)
        timestamp = int(digits) if digits else 0

        _, pos = _next_line(text, pos)  # committer
        _, pos = _next_line(text, pos)  # blank separator
        return cls(tree=tree, author=author, timestamp=timestamp, message=text[pos:], parent=parent)

    def serialize(self) -> bytes:
        """Encode the commit in its text format."""
        lines = [f"tree {hash_to_hex(self.tree)}\n"]
        if self.parent is not None:
            lines.append(f"parent {hash_to_hex(self.parent)}\n")
        lines.append(f"author {self.author} {self.timestamp}\n")
        lines.append(f"committer {self.author} {self.timestamp}\n")
        lines.append("\n")
        lines.append(self.message)
        return "".join(lines).encode("utf-8", errors="surrogateescape")


def _next_line(text: str, pos: int) -> tuple[str, int]:
    end = text.find("\n", pos)
    if end < 0:
        raise CommitError("commit is truncated")
    return text[pos:end], end + 1


def _header_hash(line: str, prefix: str) -> bytes:
    if not line.startswith(prefix):
        raise CommitError(f"expected '{prefix.strip()}' line")
    tokens = line[len(prefix):].split()
    if not tokens:
        raise CommitError(f"empty '{prefix.strip()}' line")
    try:
        return hex_to_hash(tokens[0][:HASH_HEX_SIZE])
    except ObjectError as exc:
        raise CommitError(str(exc)) from exc


def _read_first_line(path: Path) -> str:
    try:
        with open(path, encoding="utf-8") as handle:
            line = handle.readline()
    except OSError as exc:
        raise CommitError(f"cannot read {path}") from exc
    if not line:
        raise CommitError(f"{path} is empty")
    return line.split("\r", 1)[0].split("\n", 1)[0]


def _head_target(root: Path) -> tuple[str, Path]:
    head_file = root / PES_DIR / HEAD_NAME
    line = _read_first_line(head_file)
    if line.startswith(_REF_PREFIX):
        return line, root / PES_DIR / line[len(_REF_PREFIX):]
    return line, head_file


def read_head(root: str | os.PathLike[str]) -> bytes:
    """Return the commit id that HEAD points at."""
    line, target = _head_target(Path(root))
    if line.startswith(_REF_PREFIX):
        line = _read_first_line(target)
    try:
        return hex_to_hash(line)
    except ObjectError as exc:
        raise CommitError(str(exc)) from exc


def update_head(root: str | os.PathLike[str], oid: bytes) -> None:
    """Point the current branch (or a detached HEAD) at ``oid`` atomically."""
    _, target = _head_target(Path(root))
    tmp_path = target.with_name(target.name + ".tmp")
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(tmp_path, "w", encoding="utf-8") as handle:
            handle.write(hash_to_hex(oid) + "\n")
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, target)
    except OSError as exc:
        raise CommitError(f"cannot update {target}: {exc}") from exc


def walk(root: str | os.PathLike[str]) -> Iterator[tuple[bytes, Commit]]:
    """Yield ``(id, commit)`` pairs from HEAD back to the root commit."""
    store = ObjectStore(root)
    oid = read_head(root)
    while True:
        try:
            _, payload = store.read(oid)
        except ObjectError as exc:
            raise CommitError(str(exc)) from exc
        commit = Commit.parse(payload)
        yield oid, commit
        if commit.parent is None:
            return
        oid = commit.parent


def create_commit(
    root: str | os.PathLike[str],
    message: str,
    author: str,
    timestamp: int | None = None,
) -> bytes:
    """Commit the staged files, advance HEAD and return the new commit id."""
    try:
        tree_id = tree_from_index(root)
    except TreeError as exc:
        raise CommitError(f"cannot build tree: {exc}") from exc
    try:
        parent = read_head(root)
    except CommitError:
        parent = None
    commit = Commit(
        tree=tree_id,
        author=author,
        timestamp=int(time.time()) if timestamp is None else int(timestamp),
        message=message,
        parent=parent,
    )
    try:
        oid = ObjectStore(root).write(ObjectType.COMMIT, commit.serialize())
    except ObjectError as exc:
        raise CommitError(str(exc)) from exc
    update_head(root, oid)
    return oid