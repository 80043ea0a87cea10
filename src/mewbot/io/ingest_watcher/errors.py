# SPDX-FileCopyrightText: 2023 Mewbot Developers <mewbot@quicksilver.london>
#
# SPDX-License-Identifier: BSD-2-Clause

"""
Exceptions raised while watching a tree for ingestion.

Apart from NotifierInitFailure, all of these are recovered from inside the dispatch loop.
"""

from __future__ import annotations


class IngestWatcherError(Exception):
    """
    Base class for every error raised by the ingest watcher.
    """


class NotifierInitFailure(IngestWatcherError):
    """
    The inotify instance could not be created - nothing can be watched.
    """


class ReadFailure(IngestWatcherError):
    """
    A batch could not be read from the notification stream, or could not be decoded.
    """


class WatchRegistrationFailure(IngestWatcherError):
    """
    A watch could not be added for a path.
    """

    path: str

    def __init__(self, path: str, reason: str) -> None:
        """
        Record the path which could not be watched.

        :param path:
        :param reason:
        """
        self.path = path
        super().__init__(f"Cannot watch {path} - {reason}")


class HandlerLaunchFailure(IngestWatcherError):
    """
    The external ingestion handler could not be started.
    """
