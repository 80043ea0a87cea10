# SPDX-FileCopyrightText: 2023 Mewbot Developers <mewbot@quicksilver.london>
#
# SPDX-License-Identifier: BSD-2-Clause

"""
Launches the external ingestion handler for new files.

The handler is fire and forget - the dispatcher never waits for it, and never looks at how it
exited.
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Set, Union

import asyncio
import logging
import shlex

from mewbot.io.ingest_watcher.errors import HandlerLaunchFailure


def parse_handler_command(command: Union[str, Sequence[str]]) -> List[str]:
    """
    Normalise a handler command - as a shell style string or as an argument list.

    :param command:
    :return:
    """
    argv = shlex.split(command) if isinstance(command, str) else [str(arg) for arg in command]
    if not argv:
        raise ValueError("handler command cannot be empty")
    return argv


class HandlerLauncher:
    """
    Starts the handler as an independent process, with (root_token, path) appended to the command.
    """

    _logger: logging.Logger

    _command: List[str]

    # Only kept so the finished processes are reaped - the results are discarded
    _reapers: Set[asyncio.Task[int]]

    def __init__(self, command: Union[str, Sequence[str]]) -> None:
        """
        Store the command the handler is started with.

        :param command: e.g. "bash /home/airavata/oodt/inotify/ingester.sh"
        """
        self._logger = logging.getLogger(__name__ + ":" + type(self).__name__)
        self._command = parse_handler_command(command)
        self._reapers = set()

    @property
    def command(self) -> List[str]:
        """
        The command line the arguments are appended to.

        :return:
        """
        return list(self._command)

    def build_argv(self, root_token: Optional[str], path: str) -> List[str]:
        """
        Full argument vector for a single invocation.

        A missing root token is passed as an empty string - the handler always gets two args.
        :param root_token:
        :param path:
        :return:
        """
        return self._command + [root_token if root_token is not None else "", path]

    async def launch(self, root_token: Optional[str], path: str) -> None:
        """
        Start the handler and return as soon as the process exists.

        :param root_token:
        :param path:
        :return:
        :raises HandlerLaunchFailure: If the process could not be started
        """
        argv = self.build_argv(root_token, path)
        self._logger.info("Launching handler - %s", shlex.join(argv))

        try:
            process = await asyncio.create_subprocess_exec(
                *argv, stdin=asyncio.subprocess.DEVNULL, start_new_session=True
            )
        except OSError as exc:
            raise HandlerLaunchFailure(f"Cannot start {argv[0]} - {exc}") from exc

        reaper = asyncio.get_running_loop().create_task(process.wait())
        self._reapers.add(reaper)
        reaper.add_done_callback(self._reapers.discard)

    @property
    def running(self) -> int:
        """
        Number of handler processes which have not been reaped yet.

        :return:
        """
        return len(self._reapers)
