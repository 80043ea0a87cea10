# SPDX-FileCopyrightText: 2023 Mewbot Developers <mewbot@quicksilver.london>
#
# SPDX-License-Identifier: BSD-2-Clause

"""
Thin layer over inotify_simple - the source of watch handles and raw event batches.

inotify_simple parses the events itself when read through INotify.read.
Here the raw bytes are handed back instead, so the dispatcher can decode them strictly.
"""

from __future__ import annotations

from typing import Optional

import logging
import os
import select

from inotify_simple import INotify

from mewbot.io.ingest_watcher.errors import (
    NotifierInitFailure,
    ReadFailure,
    WatchRegistrationFailure,
)
from mewbot.io.ingest_watcher.monitors.raw_events import READ_BUFFER_SIZE


class InotifyNotifier:
    """
    Owns a single inotify instance - and so every watch registered through it.
    """

    _logger: logging.Logger

    _inotify: INotify

    def __init__(self) -> None:
        """
        Create the inotify instance.

        :raises NotifierInitFailure: If the kernel refuses - e.g. the instance limit is reached
        """
        self._logger = logging.getLogger(__name__ + ":" + type(self).__name__)

        try:
            self._inotify = INotify()
        except OSError as exc:
            raise NotifierInitFailure(f"inotify_init failed - {exc}") from exc

    def add_watch(self, path: str, mask: int) -> int:
        """
        Start watching a path - returning the handle events for it will carry.

        :param path:
        :param mask:
        :return:
        """
        try:
            return int(self._inotify.add_watch(path, mask))
        except OSError as exc:
            raise WatchRegistrationFailure(path, exc.strerror or str(exc)) from exc

    def read_batch(self, timeout: Optional[float] = None) -> bytes:
        """
        Block until at least one event is available - then return the raw bytes of the batch.

        :param timeout: Seconds to wait. An empty batch is returned if nothing arrives in time.
        :return:
        """
        fd = self._inotify.fileno()
        try:
            poller = select.poll()
            poller.register(fd, select.POLLIN)
            ready = poller.poll(None if timeout is None else int(timeout * 1000))
            if not ready:
                return b""
            return os.read(fd, READ_BUFFER_SIZE)
        except OSError as exc:
            raise ReadFailure(f"read from inotify failed - {exc}") from exc

    @property
    def closed(self) -> bool:
        """
        Has this notifier been shut down.

        :return:
        """
        return bool(self._inotify.closed)

    def close(self) -> None:
        """
        Close the inotify instance - which releases every watch registered on it.

        :return:
        """
        if not self._inotify.closed:
            self._logger.info("Closing inotify instance")
            self._inotify.close()
