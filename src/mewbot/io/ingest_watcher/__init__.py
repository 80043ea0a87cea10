#!/usr/bin/env python3

"""
Public api for the ingest watcher IOConfig - which watches a tree and feeds new files to a handler.
"""

# SPDX-FileCopyrightText: 2023 Mewbot Developers <mewbot@quicksilver.london>
#
# SPDX-License-Identifier: BSD-2-Clause

from __future__ import annotations

from typing import List, Optional, Sequence, Union

from mewbot.api.v1 import Input, IOConfig, Output

from mewbot.io.ingest_watcher.errors import (
    HandlerLaunchFailure,
    IngestWatcherError,
    NotifierInitFailure,
    ReadFailure,
    WatchRegistrationFailure,
)
from mewbot.io.ingest_watcher.inputs import IngestWatchInput
from mewbot.io.ingest_watcher.monitors.paths import ROOT_TOKEN_INDEX
from mewbot.io.ingest_watcher.watch_events import (
    DirCreatedWithinWatchedTreeInputEvent,
    DirDeletedFromWatchedTreeInputEvent,
    FileCreatedWithinWatchedTreeInputEvent,
    FileDeletedFromWatchedTreeInputEvent,
    IngestWatchInputEvent,
)

__version__ = "0.0.1"


__all__ = (
    "IngestWatchInputEvent",
    "DirCreatedWithinWatchedTreeInputEvent",
    "FileCreatedWithinWatchedTreeInputEvent",
    "DirDeletedFromWatchedTreeInputEvent",
    "FileDeletedFromWatchedTreeInputEvent",
    "IngestWatcherError",
    "NotifierInitFailure",
    "ReadFailure",
    "WatchRegistrationFailure",
    "HandlerLaunchFailure",
    "IngestWatcherIO",
    "IngestWatchInput",
)


class IngestWatcherIO(IOConfig):
    """
    Watches a directory tree - and launches an ingestion handler for every new file in it.
    """

    _input: Optional[IngestWatchInput] = None

    _root_path: Optional[str] = None
    _base_path: Optional[str] = None
    _handler_command: Optional[Union[str, List[str]]] = None
    _root_token_index: int = ROOT_TOKEN_INDEX
    _read_timeout: float = 1.0
    _scan_existing: bool = False

    @property
    def root_path(self) -> Optional[str]:
        """
        The top of the tree to watch.

        :return:
        """
        return self._root_path

    @root_path.setter
    def root_path(self, root_path: str) -> None:
        """
        Set the watched tree.

        :param root_path:
        :return:
        """
        self._root_path = root_path

    @property
    def base_path(self) -> Optional[str]:
        """
        Where the handler is told the tree lives - the root path if not set.

        :return:
        """
        return self._base_path if self._base_path is not None else self._root_path

    @base_path.setter
    def base_path(self, base_path: Optional[str]) -> None:
        """
        Set the base path used when building the path argument for the handler.

        :param base_path:
        :return:
        """
        self._base_path = base_path

    @property
    def handler_command(self) -> Optional[Union[str, List[str]]]:
        """
        The ingestion handler - if not set, new files are only reported as events.

        :return:
        """
        return self._handler_command

    @handler_command.setter
    def handler_command(self, handler_command: Optional[Union[str, List[str]]]) -> None:
        """
        Set the command the root token and file path are appended to.

        :param handler_command:
        :return:
        """
        assert handler_command is None or isinstance(
            handler_command, (str, list)
        ), f"handler_command couldn't be set as {handler_command}"
        self._handler_command = handler_command

    @property
    def root_token_index(self) -> int:
        """
        Position of the path component which is handed to the handler as the root token.

        :return:
        """
        return self._root_token_index

    @root_token_index.setter
    def root_token_index(self, root_token_index: int) -> None:
        """
        Set the position of the root token - zero based.

        :param root_token_index:
        :return:
        """
        assert (
            isinstance(root_token_index, int) and root_token_index >= 0
        ), f"root_token_index couldn't be set as {root_token_index}"
        self._root_token_index = root_token_index

    @property
    def read_timeout(self) -> float:
        """
        How long, in seconds, each read of inotify waits before giving up.

        :return:
        """
        return self._read_timeout

    @read_timeout.setter
    def read_timeout(self, read_timeout: float) -> None:
        """
        Set the read timeout.

        :param read_timeout:
        :return:
        """
        assert read_timeout > 0, f"read_timeout couldn't be set as {read_timeout}"
        self._read_timeout = float(read_timeout)

    @property
    def scan_existing(self) -> bool:
        """
        Whether dirs which already exist below the root are watched at startup.

        :return:
        """
        return self._scan_existing

    @scan_existing.setter
    def scan_existing(self, scan_existing: bool) -> None:
        """
        Set whether the existing tree is scanned at startup.

        :param scan_existing:
        :return:
        """
        self._scan_existing = bool(scan_existing)

    def get_inputs(self) -> Sequence[Input]:
        """
        Return all the input methods for this IOConfig.

        :return:
        """
        assert self._root_path is not None, "root_path must be set before startup"

        if not self._input:
            self._input = IngestWatchInput(
                input_path=self._root_path,
                base_path=self._base_path,
                handler_command=self._handler_command,
                root_token_index=self._root_token_index,
                read_timeout=self._read_timeout,
                scan_existing=self._scan_existing,
            )

        return [self._input]

    def get_outputs(self) -> Sequence[Output]:
        """
        No outputs are currently supported for this IOConfig.

        :return:
        """
        return []
