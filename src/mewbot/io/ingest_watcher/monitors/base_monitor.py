# SPDX-FileCopyrightText: 2023 Mewbot Developers <mewbot@quicksilver.london>
#
# SPDX-License-Identifier: BSD-2-Clause

"""
Stores the base class for waiting on the root of the watched tree.
"""

from typing import Optional

import asyncio
import dataclasses
import logging

import aiopath  # type: ignore


@dataclasses.dataclass
class InputState:
    """
    Stores a path to the tree we're watching and whether it is there yet.
    """

    input_path: Optional[str] = None
    input_path_exists: bool = False


class BaseMonitor:
    """
    inotify cannot watch a dir which does not exist yet - so wait for one to appear.
    """

    _logger: logging.Logger

    _polling_interval: float

    _input_path_state: InputState

    async def monitor_input_path_dir(self) -> str:
        """
        Poll until there is a dir at the input path.

        A file at the input path is waited out in the same way as nothing at all.
        :return: The input path - now known to be a dir
        """
        if self._input_path_state.input_path_exists and self._input_path_state.input_path:
            return self._input_path_state.input_path

        self._logger.info(
            "The provided input path will be monitored until a dir appears - %s",
            self._input_path_state.input_path,
        )

        while True:
            if self._input_path_state.input_path is None:
                await asyncio.sleep(
                    self._polling_interval
                )  # Give the rest of the loop a chance to do something
                continue

            target_async_path: aiopath.AsyncPath = aiopath.AsyncPath(
                self._input_path_state.input_path
            )

            if not await target_async_path.is_dir():
                await asyncio.sleep(self._polling_interval)
                continue

            self._logger.info(
                "Something has appeared at the input_path - %s",
                self._input_path_state.input_path,
            )
            self._input_path_state.input_path_exists = True
            return self._input_path_state.input_path
