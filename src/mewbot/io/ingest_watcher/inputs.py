#!/usr/bin/env python3

# SPDX-FileCopyrightText: 2023 Mewbot Developers <mewbot@quicksilver.london>
#
# SPDX-License-Identifier: BSD-2-Clause

"""
Contains the input class which watches a tree and puts what it sees on the wire.
"""

from __future__ import annotations

from typing import Optional, Sequence, Set, Type, Union

import asyncio
import logging
import os.path

from mewbot.api.v1 import Input, InputEvent

from mewbot.io.ingest_watcher.errors import NotifierInitFailure, WatchRegistrationFailure
from mewbot.io.ingest_watcher.handler import HandlerLauncher
from mewbot.io.ingest_watcher.monitors.base_monitor import BaseMonitor, InputState
from mewbot.io.ingest_watcher.monitors.dispatcher import IngestDispatcher
from mewbot.io.ingest_watcher.monitors.notifier import InotifyNotifier
from mewbot.io.ingest_watcher.monitors.paths import ROOT_TOKEN_INDEX
from mewbot.io.ingest_watcher.watch_events import (
    DirCreatedWithinWatchedTreeInputEvent,
    DirDeletedFromWatchedTreeInputEvent,
    FileCreatedWithinWatchedTreeInputEvent,
    FileDeletedFromWatchedTreeInputEvent,
)


class IngestWatchInput(Input, BaseMonitor):
    """
    Watches a tree recursively with inotify - launching the ingestion handler for new files.

    If the root of the tree does not exist yet, the input waits for it to appear.
    """

    _logger: logging.Logger

    _input_path_state: InputState

    _polling_interval: float = 0.5

    _base_path: Optional[str]
    _handler_command: Optional[Union[str, Sequence[str]]]
    _root_token_index: int
    _read_timeout: float
    _scan_existing: bool

    dispatcher: Optional[IngestDispatcher] = None

    def __init__(  # pylint: disable = too-many-arguments
        self,
        input_path: Optional[str] = None,
        base_path: Optional[str] = None,
        handler_command: Optional[Union[str, Sequence[str]]] = None,
        root_token_index: int = ROOT_TOKEN_INDEX,
        read_timeout: float = 1.0,
        scan_existing: bool = False,
    ) -> None:
        """
        Construct the input - nothing is watched until run.

        :param input_path: The root of the tree to watch
        :param base_path: Where the handler is told the tree lives
        :param handler_command: Command the (root_token, path) arguments are appended to
        :param root_token_index: Position of the path component used as the root token
        :param read_timeout: Seconds each read of inotify waits
        :param scan_existing: Watch dirs which already exist below the root at startup
        """
        super().__init__()

        self._logger = logging.getLogger(__name__ + ":" + type(self).__name__)

        self._input_path_state = InputState(
            input_path=input_path,
            input_path_exists=input_path is not None and os.path.isdir(input_path),
        )

        self._base_path = base_path
        self._handler_command = handler_command
        self._root_token_index = root_token_index
        self._read_timeout = read_timeout
        self._scan_existing = scan_existing

    @staticmethod
    def produces_inputs() -> Set[Type[InputEvent]]:
        """
        Defines the set of input events this Input class can produce.

        :return:
        """
        return {
            DirCreatedWithinWatchedTreeInputEvent,
            FileCreatedWithinWatchedTreeInputEvent,
            DirDeletedFromWatchedTreeInputEvent,
            FileDeletedFromWatchedTreeInputEvent,
        }

    @property
    def input_path(self) -> Optional[str]:
        """
        Path of the root of the tree being watched.

        :return:
        """
        return self._input_path_state.input_path

    @property
    def input_path_exists(self) -> bool:
        """
        Cached property - does the input path exist as a dir.

        :return:
        """
        return self._input_path_state.input_path_exists

    def build_dispatcher(self, root_path: str) -> IngestDispatcher:
        """
        Create the notifier and the dispatcher which reads from it.

        :param root_path:
        :return:
        :raises NotifierInitFailure: If inotify is not available
        """
        launcher = HandlerLauncher(self._handler_command) if self._handler_command else None

        return IngestDispatcher(
            notifier=InotifyNotifier(),
            root_path=root_path,
            base_path=self._base_path,
            launcher=launcher,
            output_queue=self.queue,
            root_token_index=self._root_token_index,
            read_timeout=self._read_timeout,
        )

    async def run(self) -> None:
        """
        Wait for the tree to exist, then watch it until cancelled.
        """
        if self._input_path_state.input_path_exists:
            self._logger.info(
                'Starting IngestWatchInput - monitoring existing dir "%s"',
                self._input_path_state.input_path,
            )
        else:
            self._logger.info(
                'Waiting to start IngestWatchInput - provided input path did not exist "%s"',
                self._input_path_state.input_path,
            )

        root_path = await self.monitor_input_path_dir()

        try:
            self.dispatcher = self.build_dispatcher(root_path)
            self.dispatcher.start()
        except (NotifierInitFailure, WatchRegistrationFailure) as exc:
            self._logger.critical("Cannot start watching %s - %s", root_path, exc)
            if self.dispatcher is not None:
                self.dispatcher.close()
            raise

        try:
            if self._scan_existing:
                await asyncio.to_thread(self.dispatcher.scan_existing_tree)
            await self.dispatcher.run()
        finally:
            await self.dispatcher.aclose()
