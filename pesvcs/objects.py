"""Content-addressable object store keyed by SHA-256."""

from __future__ import annotations

import enum
import hashlib
import os
import string
from pathlib import Path

HASH_SIZE = 32
HASH_HEX_SIZE = HASH_SIZE * 2
PES_DIR = ".pes"
OBJECTS_DIR = "objects"

_HEX_DIGITS = frozenset(string.hexdigits)


class ObjectError(Exception):
    """Raised when an object cannot be encoded, stored or read back."""


class ObjectType(enum.Enum):
    """Kinds of objects kept in the store."""

    BLOB = "blob"
    TREE = "tree"
    COMMIT = "commit"


def hash_to_hex(oid: bytes) -> str:
    """Return the lower-case hex form of a binary object id."""
    return bytes(oid).hex()


def hex_to_hash(text: str) -> bytes:
    """Decode the first 64 hex characters of ``text`` into a binary id."""
    if len(text) < HASH_HEX_SIZE:
        raise ObjectError(f"hash too short: {text!r}")
    digits = text[:HASH_HEX_SIZE]
    if not _HEX_DIGITS.issuperset(digits):
        raise ObjectError(f"invalid hex hash: {text!r}")
    return bytes.fromhex(digits)


def compute_hash(data: bytes) -> bytes:
    """Return the SHA-256 digest of ``data``."""
    return hashlib.sha256(data).digest()


class ObjectStore:
    """Objects stored under ``<root>/.pes/objects/XX/YYYY...``."""

    def __init__(self, root: str | os.PathLike[str]) -> None:
        self.root = Path(root)
        self.objects_dir = self.root / PES_DIR / OBJECTS_DIR

    def path(self, oid: bytes) -> Path:
        """Return the file path where the object ``oid`` lives."""
        hex_id = hash_to_hex(oid)
        return self.objects_dir / hex_id[:2] / hex_id[2:]

    def exists(self, oid: bytes) -> bool:
        """Tell whether the object ``oid`` is present in the store."""
        return self.path(oid).exists()

    def write(self, obj_type: ObjectType, data: bytes) -> bytes:
        """Store ``data`` as an object of ``obj_type`` and return its id."""
        if not isinstance(obj_type, ObjectType):
            raise ObjectError(f"unknown object type: {obj_type!r}")
        data = bytes(data)
        full = f"{obj_type.value} {len(data)}".encode("ascii") + b"\0" + data
        oid = compute_hash(full)
        if self.exists(oid):
            return oid

        final_path = self.path(oid)
        final_path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = final_path.with_name(final_path.name + ".tmp")
        try:
            with open(temp_path, "wb") as handle:
                handle.write(full)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(temp_path, final_path)
        except OSError as exc:
            raise ObjectError(f"cannot write object {hash_to_hex(oid)}: {exc}") from exc
        return oid

    def read(self, oid: bytes) -> tuple[ObjectType, bytes]:
        """Read the object ``oid``, verifying its hash; return type and payload."""
        try:
            raw = self.path(oid).read_bytes()
        except OSError as exc:
            raise ObjectError(f"cannot read object {hash_to_hex(oid)}") from exc

        if compute_hash(raw) != bytes(oid):
            raise ObjectError(f"object {hash_to_hex(oid)} is corrupt")

        header, sep, payload = raw.partition(b"\0")
        if not sep:
            raise ObjectError(f"object {hash_to_hex(oid)} has no header")

        type_name = header.split(b" ", 1)[0].decode("ascii", errors="replace")
        try:
            obj_type = ObjectType(type_name)
        except ValueError as exc:
            raise ObjectError(f"unknown object type {type_name!r}") from exc
        return obj_type, payload