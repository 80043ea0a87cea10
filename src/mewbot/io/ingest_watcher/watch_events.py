# SPDX-FileCopyrightText: 2023 Mewbot Developers <mewbot@quicksilver.london>
#
# SPDX-License-Identifier: BSD-2-Clause

"""
Events produced by the ingest watcher and put on the wire for the bot.
"""

from __future__ import annotations

from typing import Optional

import dataclasses

from inotify_simple import Event
from mewbot.core import InputEvent


@dataclasses.dataclass
class IngestWatchInputEvent(InputEvent):
    """
    Base class for everything the ingest watcher produces.

    path is the full path of the entity the event concerns - as far as it could be worked out.
    base_event is the raw inotify event which caused this one.
    """

    path: str
    base_event: Optional[Event]


@dataclasses.dataclass
class DirCreatedWithinWatchedTreeInputEvent(IngestWatchInputEvent):
    """
    A dir has been created inside the tree - and is now watched under the given handle.
    """

    handle: int


@dataclasses.dataclass
class FileCreatedWithinWatchedTreeInputEvent(IngestWatchInputEvent):
    """
    A file has been created inside the tree.

    root_token is the category the file landed under (None if the path was too shallow).
    handler_path is the path handed to the ingestion handler.
    """

    root_token: Optional[str]
    handler_path: str


@dataclasses.dataclass
class DirDeletedFromWatchedTreeInputEvent(IngestWatchInputEvent):
    """
    A dir has been deleted from inside the tree.
    """


@dataclasses.dataclass
class FileDeletedFromWatchedTreeInputEvent(IngestWatchInputEvent):
    """
    A file has been deleted from inside the tree.
    """
