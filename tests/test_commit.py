import pytest

from pesvcs.commit import (
    Commit,
    CommitError,
    create_commit,
    read_head,
    update_head,
    walk,
)
from pesvcs.index import Index
from pesvcs.objects import ObjectStore, ObjectType, hash_to_hex
from pesvcs.tree import Tree

TREE_ID = bytes(range(32))
PARENT_ID = bytes(range(100, 132))


@pytest.fixture
def repo(tmp_path):
    (tmp_path / ".pes" / "objects").mkdir(parents=True)
    (tmp_path / ".pes" / "refs" / "heads").mkdir(parents=True)
    (tmp_path / ".pes" / "HEAD").write_text("ref: refs/heads/main\n")
    return tmp_path


def test_serialize_format():
    commit = Commit(tree=TREE_ID, author="Alice", timestamp=1700000000, message="first\n", parent=PARENT_ID)
    expected = (
        f"tree {hash_to_hex(TREE_ID)}\n"
        f"parent {hash_to_hex(PARENT_ID)}\n"
        "author Alice 1700000000\n"
        "committer Alice 1700000000\n"
        "\n"
        "first\n"
    ).encode()
    assert commit.serialize() == expected


def test_serialize_without_parent_omits_line():
    commit = Commit(tree=TREE_ID, author="Bob", timestamp=5, message="m")
    assert b"parent" not in commit.serialize()
    assert commit.serialize().startswith(f"tree {hash_to_hex(TREE_ID)}\n".encode())


@pytest.mark.parametrize("parent", [None, PARENT_ID])
def test_round_trip(parent):
    commit = Commit(tree=TREE_ID, author="Carol Example", timestamp=42, message="multi\nline\n", parent=parent)
    assert Commit.parse(commit.serialize()) == commit


def test_parse_accepts_text():
    commit = Commit(tree=TREE_ID, author="Dan", timestamp=7, message="hi")
    assert Commit.parse(commit.serialize().decode()) == commit


@pytest.mark.parametrize(
    "data",
    [
        b"",
        b"nottree abc\n",
        b"tree abcd\n",
        f"tree {hash_to_hex(TREE_ID)}\n".encode(),
        f"tree {hash_to_hex(TREE_ID)}\nauthor nospace\ncommitter x 1\n\nmsg".encode(),
        f"tree {hash_to_hex(TREE_ID)}\nauthor Eve 1\n".encode(),
    ],
)
def test_parse_rejects_malformed(data):
    with pytest.raises(CommitError):
        Commit.parse(data)


def test_read_head_without_commits_fails(repo):
    with pytest.raises(CommitError):
        read_head(repo)


def test_read_head_without_head_file_fails(tmp_path):
    with pytest.raises(CommitError):
        read_head(tmp_path)


def test_update_then_read_head_through_ref(repo):
    update_head(repo, TREE_ID)
    assert read_head(repo) == TREE_ID
    ref_text = (repo / ".pes" / "refs" / "heads" / "main").read_text()
    assert ref_text == hash_to_hex(TREE_ID) + "\n"
    assert (repo / ".pes" / "HEAD").read_text() == "ref: refs/heads/main\n"


def test_detached_head(repo):
    (repo / ".pes" / "HEAD").write_text(hash_to_hex(PARENT_ID) + "\n")
    assert read_head(repo) == PARENT_ID
    update_head(repo, TREE_ID)
    assert read_head(repo) == TREE_ID
    assert (repo / ".pes" / "HEAD").read_text().strip() == hash_to_hex(TREE_ID)


def test_create_commit_with_empty_index_fails(repo):
    with pytest.raises(CommitError):
        create_commit(repo, "nothing", "Alice", 1)


def test_create_commit_and_walk(repo):
    index = Index.load(repo)
    (repo / "a.txt").write_text("one")
    index.add("a.txt")
    first = create_commit(repo, "first", "Alice", 100)
    assert read_head(repo) == first

    (repo / "a.txt").write_text("two!")
    index.add("a.txt")
    second = create_commit(repo, "second", "Alice", 200)
    assert read_head(repo) == second

    history = list(walk(repo))
    assert [oid for oid, _ in history] == [second, first]
    assert [c.message for _, c in history] == ["second", "first"]
    assert history[0][1].parent == first
    assert history[1][1].parent is None
    assert history[0][1].timestamp == 200
    assert history[0][1].author == "Alice"


def test_created_commit_object_points_at_tree(repo):
    (repo / "f").write_text("content")
    index = Index.load(repo)
    index.add("f")
    oid = create_commit(repo, "msg", "Alice", 1)
    store = ObjectStore(repo)
    obj_type, payload = store.read(oid)
    assert obj_type is ObjectType.COMMIT
    commit = Commit.parse(payload)
    tree_type, tree_payload = store.read(commit.tree)
    assert tree_type is ObjectType.TREE
    assert Tree.parse(tree_payload).entries[0].hash == index.find("f").hash


def test_walk_fails_on_missing_object(repo):
    update_head(repo, TREE_ID)
    with pytest.raises(CommitError):
        list(walk(repo))