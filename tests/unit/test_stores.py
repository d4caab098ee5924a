"""
Unit tests for the record stores.

The git-notes store runs against a real temporary repository; the Redis
store against a mocked client.
"""

import json
from unittest.mock import Mock

import pytest
import redis

from inbox_mirror.git import git
from inbox_mirror.storage.keys import hash_key
from inbox_mirror.storage.local_state import InMemoryMirrorStore, StorageError
from inbox_mirror.storage.notes import GitNotesStore
from inbox_mirror.storage.redis_kv import RedisMirrorStore

RECORD = {"messageID": "m1@example.org", "pullRequestURL": "https://github.com/git/git/pull/1"}


class TestInMemoryMirrorStore:
    """Tests for InMemoryMirrorStore."""

    def test_missing_key(self, store):
        assert store.get("nope") is None
        assert store.known_digests() == set()

    def test_set_get(self, store):
        store.set("m1@example.org", RECORD)
        assert store.get("m1@example.org") == RECORD
        assert store.known_digests() == {hash_key("m1@example.org")}

    def test_existing_key_needs_force(self, store):
        store.set("k", {"v": 1})
        with pytest.raises(StorageError):
            store.set("k", {"v": 2})
        store.set("k", {"v": 2}, force=True)
        assert store.get("k") == {"v": 2}

    def test_values_are_copied(self):
        s = InMemoryMirrorStore()
        value = {"v": [1]}
        s.set("k", value)
        value["v"].append(2)
        s.get("k")["v"].append(3)
        assert s.get("k") == {"v": [1]}


class TestGitNotesStore:
    """Tests for GitNotesStore against a real repository."""

    @pytest.fixture
    def notes(self, git_repo):
        git_repo.commit_file("README", "notes live here\n")
        return GitNotesStore(git_repo.path, notes_ref="refs/notes/test")

    def test_empty_ref(self, notes):
        assert notes.known_digests() == set()
        assert notes.get("m1@example.org") is None

    def test_set_get(self, notes):
        notes.set("m1@example.org", RECORD)
        assert notes.get("m1@example.org") == RECORD
        assert notes.get("m2@example.org") is None

    def test_note_attached_to_key_blob(self, notes, git_repo):
        notes.set("m1@example.org", RECORD)
        blob = git_repo.run("hash-object", "--stdin", stdin="m1@example.org\n")
        assert blob == hash_key("m1@example.org")
        assert json.loads(git_repo.run("notes", "--ref=refs/notes/test", "show", blob)) == RECORD

    def test_known_digests(self, notes):
        notes.set("a@example.org", RECORD)
        notes.set("b@example.org", RECORD)
        assert notes.known_digests() == {hash_key("a@example.org"), hash_key("b@example.org")}

    def test_force(self, notes):
        notes.set("state", {"latestRevision": "abc"})
        with pytest.raises(StorageError):
            notes.set("state", {"latestRevision": "def"})
        notes.set("state", {"latestRevision": "def"}, force=True)
        assert notes.get("state") == {"latestRevision": "def"}

    def test_identity_used_for_notes_commits(self, git_repo):
        git_repo.commit_file("README", "x\n")
        store = GitNotesStore(git_repo.path, notes_ref="refs/notes/test", identity=("Mirror Bot", "bot@example.org"))
        store.set("k", {"v": 1})
        author = git(["log", "-1", "--format=%an <%ae>", "refs/notes/test"], git_repo.path)
        assert author == "Mirror Bot <bot@example.org>"

    def test_corrupt_note(self, notes, git_repo):
        blob = git_repo.run("hash-object", "-w", "--stdin", stdin="k\n")
        git_repo.run("notes", "--ref=refs/notes/test", "add", "-m", "not json", blob)
        with pytest.raises(StorageError):
            notes.get("k")

    def test_not_a_repository(self, tmp_path):
        store = GitNotesStore(tmp_path, notes_ref="refs/notes/test")
        with pytest.raises(StorageError):
            store.set("k", {"v": 1})


class TestRedisMirrorStore:
    """Tests for RedisMirrorStore with a mocked client."""

    @pytest.fixture
    def client(self):
        return Mock(spec=redis.Redis)

    @pytest.fixture
    def rstore(self, client):
        return RedisMirrorStore(prefix="t:", client=client)

    def test_get_missing(self, rstore, client):
        client.get.return_value = None
        assert rstore.get("k") is None
        client.get.assert_called_once_with(f"t:{hash_key('k')}")

    def test_get_decodes_json(self, rstore, client):
        client.get.return_value = json.dumps(RECORD)
        assert rstore.get("m1@example.org") == RECORD

    def test_set_is_exclusive_without_force(self, rstore, client):
        client.set.return_value = True
        rstore.set("k", {"v": 1})
        client.set.assert_called_once_with(f"t:{hash_key('k')}", '{"v": 1}', nx=True)

        client.set.return_value = None
        with pytest.raises(StorageError):
            rstore.set("k", {"v": 2})

    def test_set_force(self, rstore, client):
        client.set.return_value = True
        rstore.set("k", {"v": 1}, force=True)
        assert client.set.call_args.kwargs["nx"] is False

    def test_known_digests_strip_prefix(self, rstore, client):
        client.scan_iter.return_value = iter([f"t:{hash_key('a')}", f"t:{hash_key('b')}"])
        assert rstore.known_digests() == {hash_key("a"), hash_key("b")}

    @pytest.mark.parametrize("method,args", [
        ("get", ("k",)),
        ("set", ("k", {"v": 1})),
        ("known_digests", ()),
    ])
    def test_errors_propagate(self, rstore, client, method, args):
        client.get.side_effect = redis.ConnectionError("down")
        client.set.side_effect = redis.ConnectionError("down")
        client.scan_iter.side_effect = redis.ConnectionError("down")
        with pytest.raises(StorageError):
            getattr(rstore, method)(*args)
