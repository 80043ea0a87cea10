# SPDX-FileCopyrightText: 2023 Mewbot Developers <mewbot@quicksilver.london>
#
# SPDX-License-Identifier: BSD-2-Clause

"""
Tests the notifier and dispatcher against a real inotify instance.
"""

import os
import sys
import tempfile

import pytest

from mewbot.io.ingest_watcher.errors import WatchRegistrationFailure
from mewbot.io.ingest_watcher.monitors.dispatcher import (
    DEFAULT_WATCH_MASK,
    DispatchDecision,
    IngestDispatcher,
)
from mewbot.io.ingest_watcher.monitors.notifier import InotifyNotifier
from tests.io.test_io_ingest_watcher.ingest_test_utils import (
    DispatcherTestUtils,
    RecordingLauncher,
)

# pylint: disable=invalid-name
# for clarity, test functions should be named after the things they test

pytestmark = pytest.mark.skipif(
    not sys.platform.startswith("linux"), reason="inotify is linux only"
)


class TestInotifyNotifier:
    """
    The thin layer over inotify_simple.
    """

    def test_read_times_out_empty(self) -> None:
        """
        With nothing happening, a read returns an empty batch once the timeout passes.
        """
        with tempfile.TemporaryDirectory() as tmp_dir_path:
            notifier = InotifyNotifier()
            try:
                notifier.add_watch(tmp_dir_path, DEFAULT_WATCH_MASK)
                assert notifier.read_batch(timeout=0.05) == b""
            finally:
                notifier.close()

            assert notifier.closed

    def test_add_watch_missing_path(self) -> None:
        """
        Watching a path which does not exist fails with the path attached.
        """
        with tempfile.TemporaryDirectory() as tmp_dir_path:
            missing = os.path.join(tmp_dir_path, "not_here")
            notifier = InotifyNotifier()
            try:
                with pytest.raises(WatchRegistrationFailure) as exc_info:
                    notifier.add_watch(missing, DEFAULT_WATCH_MASK)
            finally:
                notifier.close()

            assert exc_info.value.path == missing

    def test_same_path_same_handle(self) -> None:
        """
        inotify hands back the existing handle for a path which is already watched.
        """
        with tempfile.TemporaryDirectory() as tmp_dir_path:
            notifier = InotifyNotifier()
            try:
                first = notifier.add_watch(tmp_dir_path, DEFAULT_WATCH_MASK)
                second = notifier.add_watch(tmp_dir_path, DEFAULT_WATCH_MASK)
            finally:
                notifier.close()

            assert first == second


class TestIngestDispatcherLinux(DispatcherTestUtils):
    """
    The whole dispatcher, with real dirs and files.
    """

    @pytest.mark.asyncio
    async def test_dir_then_file(self) -> None:
        """
        A new dir is watched - and a file created in it is handed to the handler.
        """
        with tempfile.TemporaryDirectory() as tmp_dir_path:
            root = os.path.normpath(tmp_dir_path)
            launcher = RecordingLauncher()
            dispatcher = IngestDispatcher(
                notifier=InotifyNotifier(),
                root_path=root,
                launcher=launcher,
                root_token_index=len(root.strip("/").split("/")),
                read_timeout=0.1,
            )
            try:
                dispatcher.start()

                os.mkdir(os.path.join(root, "catA"))
                classification = await self.run_until_decision(
                    dispatcher, DispatchDecision.NEW_SUBDIRECTORY, "catA"
                )
                assert classification.child_path == os.path.join(root, "catA")
                assert os.path.join(root, "catA") in dispatcher.registry.snapshot().values()

                new_file = os.path.join(root, "catA", "report.csv")
                with open(new_file, "w", encoding="utf-8") as output_file:
                    output_file.write("a,b\n")

                await self.run_until_decision(dispatcher, DispatchDecision.NEW_FILE, "report.csv")
                assert launcher.calls == [("catA", new_file)]

                os.unlink(new_file)
                await self.run_until_decision(
                    dispatcher, DispatchDecision.DELETED_FILE, "report.csv"
                )
                os.rmdir(os.path.join(root, "catA"))
                await self.run_until_decision(
                    dispatcher, DispatchDecision.DELETED_DIRECTORY, "catA"
                )

                # The deleted dir keeps its entry
                assert len(dispatcher.registry) == 2
            finally:
                dispatcher.close()

    @pytest.mark.asyncio
    async def test_nested_dirs_created_at_once(self) -> None:
        """
        mkdir -p makes the subdir before the new dir is watched - it is still picked up.
        """
        with tempfile.TemporaryDirectory() as tmp_dir_path:
            root = os.path.normpath(tmp_dir_path)
            launcher = RecordingLauncher()
            dispatcher = IngestDispatcher(
                notifier=InotifyNotifier(),
                root_path=root,
                launcher=launcher,
                root_token_index=len(root.strip("/").split("/")),
                read_timeout=0.1,
            )
            try:
                dispatcher.start()

                sub_path = os.path.join(root, "catA", "sub")
                os.makedirs(sub_path)
                await self.run_until_decision(
                    dispatcher, DispatchDecision.NEW_SUBDIRECTORY, "catA"
                )
                assert sub_path in dispatcher.registry.snapshot().values()

                new_file = os.path.join(sub_path, "report.csv")
                with open(new_file, "w", encoding="utf-8") as output_file:
                    output_file.write("a,b\n")

                classification = await self.run_until_decision(
                    dispatcher, DispatchDecision.NEW_FILE, "report.csv"
                )
                assert classification.child_path == new_file
                assert launcher.calls == [("catA", new_file)]
            finally:
                await dispatcher.aclose()

    @pytest.mark.asyncio
    async def test_scan_existing(self) -> None:
        """
        Dirs which were there before startup are watched when scanning is asked for.
        """
        with tempfile.TemporaryDirectory() as tmp_dir_path:
            root = os.path.normpath(tmp_dir_path)
            os.makedirs(os.path.join(root, "catA", "sub"))

            launcher = RecordingLauncher()
            dispatcher = IngestDispatcher(
                notifier=InotifyNotifier(), root_path=root, launcher=launcher, read_timeout=0.1
            )
            try:
                dispatcher.start(scan_existing=True)
                assert len(dispatcher.registry) == 3

                new_file = os.path.join(root, "catA", "sub", "deep.txt")
                with open(new_file, "w", encoding="utf-8"):
                    pass

                classification = await self.run_until_decision(
                    dispatcher, DispatchDecision.NEW_FILE, "deep.txt"
                )
                assert classification.child_path == new_file
                assert len(launcher.calls) == 1
            finally:
                dispatcher.close()
