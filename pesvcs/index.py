"""Staging area kept as a sorted text file in ``.pes/index``."""

from __future__ import annotations

import os
import stat
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator

from .objects import (
    PES_DIR,
    ObjectError,
    ObjectStore,
    ObjectType,
    hash_to_hex,
    hex_to_hash,
)

INDEX_NAME = "index"
MAX_INDEX_ENTRIES = 10000
MODE_FILE = 0o100644
MODE_EXEC = 0o100755


class StagingError(Exception):
    """Raised when the staging area cannot be updated."""


@dataclass
class IndexEntry:
    """One staged file."""

    mode: int
    hash: bytes
    mtime_sec: int
    size: int
    path: str

    def to_line(self) -> str:
        return f"{self.mode:o} {hash_to_hex(self.hash)} {self.mtime_sec} {self.size} {self.path}\n"


@dataclass
class Status:
    """Staged, unstaged and untracked files of a working directory."""

    staged: list[str] = field(default_factory=list)
    unstaged: list[tuple[str, str]] = field(default_factory=list)
    untracked: list[str] = field(default_factory=list)

    def render(self) -> str:
        """Return the human-readable status report."""
        sections = [
            ("Staged changes:", [("staged", p) for p in self.staged]),
            ("Unstaged changes:", list(self.unstaged)),
            ("Untracked files:", [("untracked", p) for p in self.untracked]),
        ]
        lines: list[str] = []
        for title, items in sections:
            lines.append(title)
            if items:
                lines.extend(f"  {kind + ':':<12}{path}" for kind, path in items)
            else:
                lines.append("  (nothing to show)")
            lines.append("")
        return "\n".join(lines) + "\n"


def _parse_line(line: str) -> IndexEntry | None:
    fields = line.split()
    if len(fields) < 5:
        return None
    mode_text, hex_text, mtime_text, size_text, path = fields[:5]
    try:
        return IndexEntry(
            mode=int(mode_text, 8),
            hash=hex_to_hash(hex_text),
            mtime_sec=int(mtime_text),
            size=int(size_text),
            path=path,
        )
    except (ValueError, ObjectError):
        return None


class Index:
    """The staging area of a repository rooted at ``root``."""

    def __init__(
        self,
        root: str | os.PathLike[str],
        entries: Iterable[IndexEntry] | None = None,
    ) -> None:
        self.root = Path(root)
        self._entries: dict[str, IndexEntry] = {}
        for entry in entries or ():
            self._entries[entry.path] = entry
        self._store = ObjectStore(self.root)

    @property
    def file(self) -> Path:
        return self.root / PES_DIR / INDEX_NAME

    @property
    def entries(self) -> list[IndexEntry]:
        return list(self._entries.values())

    def __iter__(self) -> Iterator[IndexEntry]:
        return iter(list(self._entries.values()))

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, path: object) -> bool:
        return path in self._entries

    @classmethod
    def load(cls, root: str | os.PathLike[str]) -> "Index":
        """Read the index file; a missing file gives an empty index."""
        index = cls(root)
        try:
            text = index.file.read_text(encoding="utf-8")
        except FileNotFoundError:
            return index
        for line in text.splitlines():
            entry = _parse_line(line)
            if entry is None or len(index._entries) >= MAX_INDEX_ENTRIES:
                break
            index._entries[entry.path] = entry
        return index

    def save(self) -> None:
        """Write the index atomically, entries sorted by path."""
        pes_dir = self.root / PES_DIR
        pes_dir.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix="index_tmp_", dir=pes_dir)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                for entry in sorted(self._entries.values(), key=lambda e: e.path):
                    handle.write(entry.to_line())
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self.file)
        except OSError as exc:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
            raise StagingError(f"cannot write index: {exc}") from exc

    def find(self, path: str) -> IndexEntry | None:
        """Return the entry staged for ``path``, if any."""
        return self._entries.get(path)

    def add(self, path: str) -> IndexEntry:
        """Store the file's contents as a blob and stage it."""
        full_path = self.root / path
        try:
            data = full_path.read_bytes()
        except OSError as exc:
            raise StagingError(f"cannot open '{path}'") from exc
        try:
            oid = self._store.write(ObjectType.BLOB, data)
        except ObjectError as exc:
            raise StagingError(f"cannot store '{path}': {exc}") from exc
        try:
            st = full_path.lstat()
        except OSError as exc:
            raise StagingError(f"cannot stat '{path}'") from exc

        mode = MODE_EXEC if st.st_mode & stat.S_IXUSR else MODE_FILE
        entry = self._entries.get(path)
        if entry is None:
            if len(self._entries) >= MAX_INDEX_ENTRIES:
                raise StagingError("index is full")
            entry = IndexEntry(mode, oid, int(st.st_mtime), st.st_size, path)
            self._entries[path] = entry
        else:
            entry.hash = oid
            entry.mtime_sec = int(st.st_mtime)
            entry.size = st.st_size
            entry.mode = mode
        self.save()
        return entry

    def remove(self, path: str) -> None:
        """Unstage ``path``."""
        if path not in self._entries:
            raise StagingError(f"'{path}' is not in the index")
        del self._entries[path]
        self.save()

    def status(self) -> Status:
        """Compare the index with the working directory."""
        result = Status()
        result.staged = [entry.path for entry in self._entries.values()]

        for entry in self._entries.values():
            try:
                st = (self.root / entry.path).stat()
            except OSError:
                result.unstaged.append(("deleted", entry.path))
                continue
            if int(st.st_mtime) != entry.mtime_sec or st.st_size != entry.size:
                result.unstaged.append(("modified", entry.path))

        try:
            names = sorted(os.listdir(self.root))
        except OSError:
            names = []
        for name in names:
            if name in (PES_DIR, "pes") or ".o" in name or name in self._entries:
                continue
            try:
                st = (self.root / name).stat()
            except OSError:
                continue
            if stat.S_ISREG(st.st_mode):
                result.untracked.append(name)
        return result