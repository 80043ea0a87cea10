#!/usr/bin/env python3

# SPDX-FileCopyrightText: 2023 Mewbot Developers <mewbot@quicksilver.london>
#
# SPDX-License-Identifier: BSD-2-Clause

# pylint: disable=duplicate-code
# this is an example - duplication for emphasis is desirable

"""
Tools to support an example which watches an ingestion tree and logs what happens in it.
"""

from __future__ import annotations

from typing import Any, AsyncIterable, Dict, Set, Type

import logging

from mewbot.api.v1 import Action, Trigger
from mewbot.core import InputEvent, OutputEvent

from mewbot.io.ingest_watcher import (
    DirCreatedWithinWatchedTreeInputEvent,
    DirDeletedFromWatchedTreeInputEvent,
    FileCreatedWithinWatchedTreeInputEvent,
    FileDeletedFromWatchedTreeInputEvent,
    IngestWatchInputEvent,
)


class IngestWatchAllTrigger(Trigger):
    """
    Nothing fancy - just fires whenever the ingest watcher reports anything.
    """

    @staticmethod
    def consumes_inputs() -> Set[Type[InputEvent]]:
        """
        Triggers on any change within the watched tree.

        :return:
        """
        return {
            DirCreatedWithinWatchedTreeInputEvent,
            FileCreatedWithinWatchedTreeInputEvent,
            DirDeletedFromWatchedTreeInputEvent,
            FileDeletedFromWatchedTreeInputEvent,
        }

    def matches(self, event: InputEvent) -> bool:
        """
        Matches any event the ingest watcher produces.

        :param event:
        :return:
        """
        return isinstance(event, IngestWatchInputEvent)


class IngestWatchLogResponse(Action):
    """
    Log every event from the ingest watcher.
    """

    _logger: logging.Logger

    def __init__(self) -> None:
        """
        Startup - with logging.
        """
        super().__init__()
        self._logger = logging.getLogger(__name__ + ":" + type(self).__name__)

    @staticmethod
    def consumes_inputs() -> Set[Type[InputEvent]]:
        """
        Everything the ingest watcher produces is of interest.

        :return:
        """
        return {
            DirCreatedWithinWatchedTreeInputEvent,
            FileCreatedWithinWatchedTreeInputEvent,
            DirDeletedFromWatchedTreeInputEvent,
            FileDeletedFromWatchedTreeInputEvent,
        }

    @staticmethod
    def produces_outputs() -> Set[Type[OutputEvent]]:
        """
        No output is produced - all this does is log.

        :return:
        """
        return set()

    async def act(
        self, event: InputEvent, state: Dict[str, Any]
    ) -> AsyncIterable[OutputEvent]:
        """
        Log the event - with the root token for new files, as that is what routes ingestion.
        """
        if not isinstance(event, IngestWatchInputEvent):
            self._logger.warning("Received wrong event type %s", type(event))
            return

        if isinstance(event, FileCreatedWithinWatchedTreeInputEvent):
            self._logger.info(
                "New file %s under root %s - handed over as %s",
                event.path,
                event.root_token,
                event.handler_path,
            )
        else:
            self._logger.info("%s - %s", type(event).__name__, event.path)

        yield OutputEvent()
