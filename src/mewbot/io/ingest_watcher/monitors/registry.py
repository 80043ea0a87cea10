# SPDX-FileCopyrightText: 2023 Mewbot Developers <mewbot@quicksilver.london>
#
# SPDX-License-Identifier: BSD-2-Clause

"""
Maps the opaque watch descriptors handed out by inotify back onto the paths they watch.

inotify events only carry the descriptor of the watch which produced them and the name of the
child they concern - never a full path.
So every descriptor has to be remembered alongside the path it was registered for.
"""

from __future__ import annotations

from typing import Dict, Iterator, NamedTuple, Optional, Set

import logging


class WatchEntry(NamedTuple):
    """
    A single watch - the descriptor inotify returned and the path it was added for.
    """

    handle: int
    path: str


class WatchRegistry:
    """
    In memory store of every watch which is currently active.

    Entries are never removed while the tree is being watched.
    inotify is the only source of handles, and it does not reuse a live one.
    """

    _logger: logging.Logger

    _paths: Dict[int, str]

    def __init__(self) -> None:
        """
        Start with an empty registry - the root watch is added by the dispatcher.
        """
        self._logger = logging.getLogger(__name__ + ":" + type(self).__name__)
        self._paths = {}

    def insert(self, handle: int, path: str) -> None:
        """
        Store the path for a handle.

        If the handle is already known, the new path replaces the old one.
        :param handle:
        :param path:
        :return:
        """
        previous = self._paths.get(handle)
        self._paths[handle] = path

        if previous is None:
            self._logger.debug("Registered watch %d for %s", handle, path)
        elif previous != path:
            self._logger.debug("Watch %d moved from %s to %s", handle, previous, path)

    def get(self, handle: int) -> Optional[str]:
        """
        Retrieve the path registered for a handle - None if the handle is not known.

        :param handle:
        :return:
        """
        return self._paths.get(handle)

    def entries(self) -> Iterator[WatchEntry]:
        """
        Iterate over every registered watch.

        :return:
        """
        for handle, path in self._paths.items():
            yield WatchEntry(handle=handle, path=path)

    def handles(self) -> Set[int]:
        """
        Every handle currently registered.

        :return:
        """
        return set(self._paths)

    def snapshot(self) -> Dict[int, str]:
        """
        Copy of the current handle to path mapping.

        :return:
        """
        return dict(self._paths)

    def clear(self) -> None:
        """
        Forget every watch - only valid once the notifier has been closed.

        :return:
        """
        self._logger.debug("Clearing %d registered watches", len(self._paths))
        self._paths.clear()

    def __contains__(self, handle: object) -> bool:
        return handle in self._paths

    def __len__(self) -> int:
        return len(self._paths)
