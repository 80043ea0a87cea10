# SPDX-FileCopyrightText: 2023 Mewbot Developers <mewbot@quicksilver.london>
#
# SPDX-License-Identifier: BSD-2-Clause

"""
Reads raw events off inotify, works out what each one means, and acts on it.

inotify is not recursive.
So every dir created inside the tree has to have a watch added for it as it appears.
New files are handed off to the external ingestion handler.
Deletions are only reported.
"""

from __future__ import annotations

from typing import List, Optional

import asyncio
import dataclasses
import enum
import logging
import os

from inotify_simple import Event, flags
from mewbot.core import InputEvent

from mewbot.io.ingest_watcher.errors import (
    HandlerLaunchFailure,
    ReadFailure,
    WatchRegistrationFailure,
)
from mewbot.io.ingest_watcher.handler import HandlerLauncher
from mewbot.io.ingest_watcher.monitors.notifier import InotifyNotifier
from mewbot.io.ingest_watcher.monitors.paths import (
    ROOT_TOKEN_INDEX,
    compose_child_path,
    derive_root_token,
    rebase_path,
)
from mewbot.io.ingest_watcher.monitors.raw_events import decode_events, describe_mask
from mewbot.io.ingest_watcher.monitors.registry import WatchRegistry
from mewbot.io.ingest_watcher.watch_events import (
    DirCreatedWithinWatchedTreeInputEvent,
    DirDeletedFromWatchedTreeInputEvent,
    FileCreatedWithinWatchedTreeInputEvent,
    FileDeletedFromWatchedTreeInputEvent,
    IngestWatchInputEvent,
)

DEFAULT_WATCH_MASK = flags.CREATE | flags.DELETE


class DispatchDecision(enum.Enum):
    """
    What a single raw event turned out to be.
    """

    NEW_SUBDIRECTORY = "new_subdirectory"
    NEW_FILE = "new_file"
    DELETED_DIRECTORY = "deleted_directory"
    DELETED_FILE = "deleted_file"
    IGNORED = "ignored"


class IgnoreReason(enum.Enum):
    """
    Why an event was ignored.
    """

    EMPTY_NAME = "empty_name"
    UNRESOLVED_PARENT = "unresolved_parent"
    QUEUE_OVERFLOW = "queue_overflow"
    UNHANDLED_MASK = "unhandled_mask"


@dataclasses.dataclass(frozen=True)
class Classification:
    """
    A raw event, what it means, and the full path of the child it concerns (if known).
    """

    decision: DispatchDecision
    event: Event
    child_path: Optional[str] = None
    reason: Optional[IgnoreReason] = None

    @property
    def ignored(self) -> bool:
        """
        Does nothing need to be done for this event.

        :return:
        """
        return self.decision is DispatchDecision.IGNORED


class IngestDispatcher:
    """
    The single consumer of the inotify stream for a tree.

    Basic program flow goes as follows
     - a watch is added on the root and recorded in the registry
     - a batch of raw events is read from inotify (the only place this blocks)
     - each event in the batch is decoded, classified and acted on - in order
       (a new dir is watched, and so is every dir already inside it)
     - then the next batch is read
    """

    _logger: logging.Logger

    _notifier: InotifyNotifier
    _registry: WatchRegistry
    _launcher: Optional[HandlerLauncher]
    _output_queue: Optional[asyncio.Queue[InputEvent]]

    _root_path: str
    _base_path: str
    _watch_mask: int
    _root_token_index: int
    _read_timeout: Optional[float]

    root_handle: Optional[int] = None

    _pending_read: Optional[asyncio.Future[bytes]] = None

    def __init__(  # pylint: disable = too-many-arguments
        self,
        notifier: InotifyNotifier,
        root_path: str,
        base_path: Optional[str] = None,
        launcher: Optional[HandlerLauncher] = None,
        output_queue: Optional[asyncio.Queue[InputEvent]] = None,
        root_token_index: int = ROOT_TOKEN_INDEX,
        read_timeout: Optional[float] = 1.0,
        watch_mask: int = DEFAULT_WATCH_MASK,
    ) -> None:
        """
        Wire up the dispatcher - nothing is watched until start is called.

        :param notifier: Source of watch handles and raw event batches
        :param root_path: The top of the tree to watch
        :param base_path: Where the handler should be told files are - defaults to root_path
        :param launcher: Starts the ingestion handler - if None, new files are only reported
        :param output_queue: Where events for the bot are put
        :param root_token_index: Position of the path component handed to the handler
        :param read_timeout: How long each read waits before giving the loop a chance to run
        :param watch_mask: inotify flags used for the root and for every subdir
        """
        self._logger = logging.getLogger(__name__ + ":" + type(self).__name__)

        self._notifier = notifier
        self._registry = WatchRegistry()
        self._launcher = launcher
        self._output_queue = output_queue

        self._root_path = os.path.normpath(root_path)
        self._base_path = os.path.normpath(base_path) if base_path else self._root_path
        self._root_token_index = root_token_index
        self._read_timeout = read_timeout
        self._watch_mask = watch_mask

    @property
    def registry(self) -> WatchRegistry:
        """
        The registry of watches - read it, do not write it.

        :return:
        """
        return self._registry

    @property
    def root_path(self) -> str:
        """
        The top of the watched tree.

        :return:
        """
        return self._root_path

    @property
    def base_path(self) -> str:
        """
        Where the handler is told the tree lives.

        :return:
        """
        return self._base_path

    def start(self, scan_existing: bool = False) -> int:
        """
        Add the watch on the root of the tree.

        :param scan_existing: Also watch every dir which already exists below the root
        :return: The root watch handle
        :raises WatchRegistrationFailure: If the root cannot be watched - nothing would work
        """
        self.root_handle = self.add_watch(self._root_path)
        self._logger.info("Watching %s as %d", self._root_path, self.root_handle)

        if scan_existing:
            self.scan_existing_tree()

        return self.root_handle

    def add_watch(self, path: str) -> int:
        """
        Watch a path with the same mask as the root - and record it.

        :param path:
        :return:
        """
        handle = self._notifier.add_watch(path, self._watch_mask)
        self._registry.insert(handle, path)
        return handle

    def scan_existing_tree(self, start_path: Optional[str] = None) -> int:
        """
        Add a watch for every dir already below the given path - the root if not given.

        Files which already exist are not handed to the handler.
        This blocks while walking the tree - from a coroutine, run it in a thread.
        :param start_path: Top of the subtree to scan
        :return: The number of watches added
        """
        start_path = self._root_path if start_path is None else start_path

        added = 0
        for dir_path, dir_names, _ in os.walk(start_path):
            for dir_name in sorted(dir_names):
                child_path = compose_child_path(dir_path, dir_name)
                try:
                    self.add_watch(child_path)
                except WatchRegistrationFailure as exc:
                    self._logger.warning("Skipping existing dir - %s", exc)
                    continue
                added += 1

        self._logger.info("Added %d watches for existing dirs below %s", added, start_path)
        return added

    async def run(self) -> None:
        """
        Process batches until cancelled.

        :return:
        """
        if self.root_handle is None:
            self.start()

        self._logger.info("Starting dispatch loop for %s", self._root_path)

        while True:
            await self.run_once()

    async def run_once(self) -> List[Classification]:
        """
        Read a single batch of events and process every event in it.

        A batch which cannot be read or decoded is dropped - the stream is long lived, so the
        next read is still worth trying.
        :return: What each event in the batch was classified as
        """
        # The read is shielded so cancellation leaves it to finish - see aclose
        self._pending_read = asyncio.ensure_future(
            asyncio.to_thread(self._notifier.read_batch, self._read_timeout)
        )
        try:
            data = await asyncio.shield(self._pending_read)
            raw_events = decode_events(data)
        except ReadFailure as exc:
            self._logger.error("Dropping batch - %s", exc)
            return []

        return [await self.dispatch(event) for event in raw_events]

    def classify(self, event: Event) -> Classification:
        """
        Work out what an event means - without acting on it.

        :param event:
        :return:
        """
        if event.mask & flags.Q_OVERFLOW:
            return Classification(
                DispatchDecision.IGNORED, event, reason=IgnoreReason.QUEUE_OVERFLOW
            )

        if not event.name:
            return Classification(DispatchDecision.IGNORED, event, reason=IgnoreReason.EMPTY_NAME)

        parent_path = self._registry.get(event.wd)
        child_path = None if parent_path is None else compose_child_path(parent_path, event.name)
        is_dir = bool(event.mask & flags.ISDIR)

        if event.mask & flags.CREATE:
            if child_path is None:
                return Classification(
                    DispatchDecision.IGNORED, event, reason=IgnoreReason.UNRESOLVED_PARENT
                )
            decision = DispatchDecision.NEW_SUBDIRECTORY if is_dir else DispatchDecision.NEW_FILE
            return Classification(decision, event, child_path=child_path)

        if event.mask & flags.DELETE:
            decision = (
                DispatchDecision.DELETED_DIRECTORY if is_dir else DispatchDecision.DELETED_FILE
            )
            return Classification(decision, event, child_path=child_path)

        return Classification(DispatchDecision.IGNORED, event, reason=IgnoreReason.UNHANDLED_MASK)

    async def dispatch(self, event: Event) -> Classification:
        """
        Classify an event and carry out whatever it requires.

        :param event:
        :return:
        """
        classification = self.classify(event)

        if classification.decision is DispatchDecision.NEW_SUBDIRECTORY:
            await self._process_dir_creation(classification)
        elif classification.decision is DispatchDecision.NEW_FILE:
            await self._process_file_creation(classification)
        elif classification.decision is DispatchDecision.DELETED_DIRECTORY:
            await self._process_dir_deletion(classification)
        elif classification.decision is DispatchDecision.DELETED_FILE:
            await self._process_file_deletion(classification)
        else:
            self._report_ignored(classification)

        return classification

    async def _process_dir_creation(self, classification: Classification) -> None:
        """
        A dir has appeared inside the tree - extend the watch to it and everything below it.

        Subdirs can be created before the new dir is watched (mkdir -p, cp -r, tar x) and
        inotify will never report them - so the new dir is walked once its watch is in place.
        If the watch cannot be added (the dir may already be gone again) nothing below it will
        be seen - which is logged, not raised.
        :param classification:
        :return:
        """
        assert classification.child_path is not None, "dir creation without a path"
        self._logger.info("New directory %s created", classification.child_path)

        try:
            handle = self.add_watch(classification.child_path)
        except WatchRegistrationFailure as exc:
            self._logger.warning("Subtree will not be monitored - %s", exc)
            return

        await asyncio.to_thread(self.scan_existing_tree, classification.child_path)

        await self.send(
            DirCreatedWithinWatchedTreeInputEvent(
                path=classification.child_path,
                base_event=classification.event,
                handle=handle,
            )
        )

    async def _process_file_creation(self, classification: Classification) -> None:
        """
        A file has appeared inside the tree - hand it to the ingestion handler.

        :param classification:
        :return:
        """
        child_path = classification.child_path
        assert child_path is not None, "file creation without a path"

        root_token = derive_root_token(child_path, self._root_token_index)
        handler_path = rebase_path(child_path, self._root_path, self._base_path)
        self._logger.info("New file with root %s created in path %s", root_token, child_path)

        if root_token is None:
            self._logger.warning(
                "%s is too shallow to have a component at index %d - handler gets no root",
                child_path,
                self._root_token_index,
            )

        if self._launcher is not None:
            try:
                await self._launcher.launch(root_token, handler_path)
            except HandlerLaunchFailure as exc:
                self._logger.error("Handler not run for %s - %s", child_path, exc)

        await self.send(
            FileCreatedWithinWatchedTreeInputEvent(
                path=child_path,
                base_event=classification.event,
                root_token=root_token,
                handler_path=handler_path,
            )
        )

    async def _process_dir_deletion(self, classification: Classification) -> None:
        """
        A dir has been deleted - report it.

        The registry keeps the handle of the deleted dir - there is no removal path.
        :param classification:
        :return:
        """
        self._logger.info("Directory %s deleted", classification.event.name)
        await self.send(
            DirDeletedFromWatchedTreeInputEvent(
                path=classification.child_path or classification.event.name,
                base_event=classification.event,
            )
        )

    async def _process_file_deletion(self, classification: Classification) -> None:
        """
        A file has been deleted - report it.

        :param classification:
        :return:
        """
        self._logger.info("File %s deleted", classification.event.name)
        await self.send(
            FileDeletedFromWatchedTreeInputEvent(
                path=classification.child_path or classification.event.name,
                base_event=classification.event,
            )
        )

    def _report_ignored(self, classification: Classification) -> None:
        """
        Log an ignored event at a level matching how much it matters.

        :param classification:
        :return:
        """
        event = classification.event

        if classification.reason is IgnoreReason.QUEUE_OVERFLOW:
            self._logger.warning("inotify queue overflowed - events have been lost")
        elif classification.reason is IgnoreReason.UNRESOLVED_PARENT:
            self._logger.warning(
                "Ignoring %s for %s - watch %d is not registered",
                describe_mask(event.mask),
                event.name,
                event.wd,
            )
        else:
            self._logger.debug(
                "Ignoring event %s (%s) - %s",
                event,
                describe_mask(event.mask),
                classification.reason,
            )

    async def send(self, event: IngestWatchInputEvent) -> None:
        """
        Responsible for putting events on the wire.

        :param event:
        :return:
        """
        if self._output_queue is None:
            return

        await self._output_queue.put(event)

    async def aclose(self) -> None:
        """
        Wait for any read still running in its thread - then release every watch.

        The fd must stay open until no thread can still be reading it.
        :return:
        """
        pending_read, self._pending_read = self._pending_read, None
        if pending_read is not None:
            if not pending_read.done():
                self._logger.debug("Waiting for the in-flight read before closing")
                await asyncio.wait([pending_read])
            if not pending_read.cancelled() and pending_read.exception() is not None:
                self._logger.debug("Read failed while closing - %s", pending_read.exception())

        self.close()

    def close(self) -> None:
        """
        Release every watch and forget them.

        :return:
        """
        self._notifier.close()
        self._registry.clear()
        self.root_handle = None
