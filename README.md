# pesvcs

A small version control library that keeps file contents, directory listings
and commits as SHA-256 addressed objects in a `.pes` directory under a
repository root.

## Layout on disk

- `.pes/objects/XX/YYYY...` holds objects, sharded by the first two hex digits
  of their hash. Each object is stored as `<type> <size>\0<data>`, where the
  type is `blob`, `tree` or `commit`, and its id is the SHA-256 of that whole
  byte string. Writing an object that already exists does nothing.
- `.pes/index` is the staging area, one line per file, sorted by path:
  `<mode-octal> <hex-hash> <mtime> <size> <path>`. Paths are relative to the
  repository root and may not contain whitespace.
- `.pes/HEAD` holds either `ref: <path>` naming a branch file under `.pes`
  (for example `ref: refs/heads/main`), or a commit hash when HEAD is
  detached.

## Modules

- `pesvcs.objects`: `ObjectStore` with `write`, `read` (which checks the
  hash), `exists` and `path`; `ObjectType` (`BLOB`, `TREE`, `COMMIT`);
  `hash_to_hex`, `hex_to_hash` and `compute_hash`.
- `pesvcs.index`: `Index` with `load`, `save`, `find`, `add`, `remove` and
  `status`; `IndexEntry`; `Status`, whose `render()` gives the report with
  staged, unstaged (`modified` / `deleted`) and untracked files.
- `pesvcs.tree`: `Tree` with `parse` and `serialize`, `TreeEntry`,
  `get_file_mode`, and `tree_from_index`, which writes one tree object for
  each directory among the staged paths and returns the root tree's id.
- `pesvcs.commit`: `Commit` with `parse` and `serialize`, `read_head`,
  `update_head`, `walk` and `create_commit`.

## Usage

```python
from pathlib import Path

from pesvcs.objects import ObjectStore, ObjectType, hash_to_hex
from pesvcs.index import Index
from pesvcs.commit import create_commit, walk

root = Path(".")
(root / ".pes").mkdir(exist_ok=True)
(root / ".pes" / "HEAD").write_text("ref: refs/heads/main\n")

store = ObjectStore(root)
oid = store.write(ObjectType.BLOB, b"hello\n")
obj_type, data = store.read(oid)

index = Index.load(root)
index.add("hello.txt")           # stores the blob and saves the index
print(index.status().render())

commit_id = create_commit(root, "first commit", "Jane Doe", 1700000000)
for oid, commit in walk(root):
    print(hash_to_hex(oid), commit.author, commit.timestamp, commit.message)
```

`create_commit` builds the tree from the index, takes the commit HEAD points
at (if any) as parent, uses the current time when no timestamp is given, and
moves the current branch (or a detached HEAD) to the new commit. The branch
file is replaced atomically. `walk` yields `(id, commit)` pairs from HEAD back
to the first commit.

`Index.status` lists untracked regular files only at the top level of the
root, and skips `.pes`, `pes` and names containing `.o`.

Errors are reported as exceptions: `ObjectError`, `StagingError`,
`TreeError` and `CommitError`.

## What it does not do

This is a library only: there is no command-line tool. Nothing creates a
repository for you; `.pes/HEAD` must be written before the first commit, as
in the example above. There is no checkout, branching, diff, merge or
history display beyond `walk`.

## Running the tests

```
pip install -e .[test]
pytest
```