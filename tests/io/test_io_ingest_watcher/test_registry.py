# SPDX-FileCopyrightText: 2023 Mewbot Developers <mewbot@quicksilver.london>
#
# SPDX-License-Identifier: BSD-2-Clause

"""
Tests the registry which maps watch handles back onto paths.
"""

from mewbot.io.ingest_watcher.monitors.registry import WatchEntry, WatchRegistry


class TestWatchRegistry:
    """
    Insert, lookup and the read only views of the registry.
    """

    def test_insert_then_get(self) -> None:
        """
        A handle which has been inserted resolves to its path.
        """
        registry = WatchRegistry()
        registry.insert(1, "/home/airavata/inputData")
        registry.insert(2, "/home/airavata/inputData/catA")

        assert registry.get(1) == "/home/airavata/inputData"
        assert registry.get(2) == "/home/airavata/inputData/catA"
        assert len(registry) == 2

    def test_get_unknown_handle(self) -> None:
        """
        An unknown handle is not an error - it just does not resolve.
        """
        registry = WatchRegistry()
        registry.insert(1, "/base")

        assert registry.get(7) is None
        assert 7 not in registry
        assert 1 in registry

    def test_insert_same_handle_twice_last_write_wins(self) -> None:
        """
        Inserting the same handle again replaces the path - only the latest is retrievable.
        """
        registry = WatchRegistry()
        registry.insert(3, "/base/old")
        registry.insert(3, "/base/new")

        assert registry.get(3) == "/base/new"
        assert len(registry) == 1

    def test_entries_and_handles(self) -> None:
        """
        The views reflect every insert.
        """
        registry = WatchRegistry()
        registry.insert(1, "/base")
        registry.insert(4, "/base/a")

        assert set(registry.entries()) == {WatchEntry(1, "/base"), WatchEntry(4, "/base/a")}
        assert registry.handles() == {1, 4}

    def test_snapshot_is_a_copy(self) -> None:
        """
        Changing a snapshot must not change the registry.
        """
        registry = WatchRegistry()
        registry.insert(1, "/base")

        snapshot = registry.snapshot()
        snapshot[2] = "/elsewhere"

        assert registry.get(2) is None
        assert registry.snapshot() == {1: "/base"}

    def test_clear(self) -> None:
        """
        Clearing at shutdown forgets everything.
        """
        registry = WatchRegistry()
        registry.insert(1, "/base")
        registry.insert(2, "/base/a")
        registry.clear()

        assert len(registry) == 0
        assert registry.get(1) is None
