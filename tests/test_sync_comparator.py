"""Tests for reconciliation of local and remote inventories."""

from pathlib import Path

import pytest

from neosync.sync import (
    ActionSet,
    FileComparator,
    LocalFile,
    RemoteFile,
    SyncAction,
    reconcile,
)


def local(path: str, sha1: str) -> LocalFile:
    return LocalFile(path=Path("/site") / path, relative_path=path, size=1, sha1=sha1)


def remote(path: str, sha1: str) -> RemoteFile:
    return RemoteFile(relative_path=path, sha1=sha1)


def inventories(local_map: dict, remote_map: dict):
    return (
        {p: local(p, h) for p, h in local_map.items()},
        {p: remote(p, h) for p, h in remote_map.items()},
    )


class TestReconcile:
    """Tests for the reconcile function."""

    def test_mixed_changes(self):
        """New, changed, unchanged and removed files in one pass."""
        local_files, remote_files = inventories(
            {"index.html": "h1", "about.html": "h2", "new.html": "h3"},
            {"index.html": "h1", "about.html": "old", "gone.html": "h9"},
        )

        actions = reconcile(local_files, remote_files)

        assert actions.uploads == ("about.html", "new.html")
        assert actions.deletes == ("gone.html",)

    def test_identical_inventories(self):
        """No actions when every hash matches."""
        local_files, remote_files = inventories(
            {"a.html": "h1", "css/b.css": "h2"},
            {"a.html": "h1", "css/b.css": "h2"},
        )

        actions = reconcile(local_files, remote_files)

        assert actions.is_empty
        assert len(actions) == 0

    def test_empty_local_deletes_everything(self):
        local_files, remote_files = inventories({}, {"a.html": "h1", "b.html": "h2"})

        actions = reconcile(local_files, remote_files)

        assert actions.uploads == ()
        assert actions.deletes == ("a.html", "b.html")

    def test_empty_remote_uploads_everything(self):
        local_files, remote_files = inventories({"b.html": "h2", "a.html": "h1"}, {})

        actions = reconcile(local_files, remote_files)

        assert actions.uploads == ("a.html", "b.html")
        assert actions.deletes == ()

    def test_both_empty(self):
        assert reconcile({}, {}) == ActionSet()

    def test_case_only_difference_is_two_paths(self):
        local_files, remote_files = inventories({"Index.html": "h1"}, {"index.html": "h1"})

        actions = reconcile(local_files, remote_files)

        assert actions.uploads == ("Index.html",)
        assert actions.deletes == ("index.html",)

    @pytest.mark.parametrize(
        "local_map,remote_map",
        [
            ({"a": "1", "b": "2"}, {"b": "3", "c": "4"}),
            ({"x/y": "1"}, {"x/y": "1", "x/z": "2"}),
            ({"p": "1", "q": "2", "r": "3"}, {}),
        ],
    )
    def test_uploads_and_deletes_are_disjoint(self, local_map, remote_map):
        local_files, remote_files = inventories(local_map, remote_map)

        actions = reconcile(local_files, remote_files)

        assert not set(actions.uploads) & set(actions.deletes)
        assert set(actions.uploads) <= set(local_map)
        assert set(actions.deletes) <= set(remote_map)
        assert set(actions.deletes) == set(remote_map) - set(local_map)

    def test_result_is_sorted(self):
        local_files, remote_files = inventories(
            {"z.html": "1", "a.html": "1", "m/n.html": "1"},
            {"y.html": "1", "b.html": "1"},
        )

        actions = reconcile(local_files, remote_files)

        assert list(actions.uploads) == sorted(actions.uploads)
        assert list(actions.deletes) == sorted(actions.deletes)

    def test_to_dict(self):
        actions = ActionSet(uploads=("a.html",), deletes=("b.html",))
        assert actions.to_dict() == {"uploads": ["a.html"], "deletes": ["b.html"]}


class TestFileComparator:
    """Tests for per-file decisions."""

    def test_decision_reasons(self):
        local_files, remote_files = inventories(
            {"same.html": "h1", "changed.html": "h2", "new.html": "h3"},
            {"same.html": "h1", "changed.html": "hX", "removed.html": "h4"},
        )

        decisions = {
            d.relative_path: d
            for d in FileComparator().compare_files(local_files, remote_files)
        }

        assert decisions["same.html"].action == SyncAction.SKIP
        assert decisions["same.html"].reason == "Unchanged"
        assert decisions["changed.html"].action == SyncAction.UPLOAD
        assert decisions["changed.html"].reason == "Content changed"
        assert decisions["new.html"].action == SyncAction.UPLOAD
        assert decisions["new.html"].reason == "New local file"
        assert decisions["removed.html"].action == SyncAction.DELETE_REMOTE
        assert decisions["removed.html"].local_file is None

    def test_decisions_agree_with_reconcile(self):
        local_files, remote_files = inventories(
            {"a": "1", "b": "2", "c": "3"}, {"b": "2", "c": "9", "d": "4"}
        )
        comparator = FileComparator()

        decisions = comparator.compare_files(local_files, remote_files)
        actions = comparator.reconcile(local_files, remote_files)

        uploads = tuple(
            d.relative_path for d in decisions if d.action == SyncAction.UPLOAD
        )
        deletes = tuple(
            d.relative_path for d in decisions if d.action == SyncAction.DELETE_REMOTE
        )
        assert uploads == actions.uploads
        assert deletes == actions.deletes
