# SPDX-FileCopyrightText: 2023 Mewbot Developers <mewbot@quicksilver.london>
#
# SPDX-License-Identifier: BSD-2-Clause

"""
Path handling for the dispatcher.

The watched tree is laid out as <base>/<category>/<...>/<file>.
The category a new file landed under is found purely by position in its path.
"""

from __future__ import annotations

from typing import List, Optional

import posixpath

# With the default base of /home/airavata/inputData, index 3 is the first dir below the base
ROOT_TOKEN_INDEX = 3


def compose_child_path(parent_path: str, name: str) -> str:
    """
    Join the path of a watched dir with the name an event reported inside it.

    :param parent_path:
    :param name:
    :return:
    """
    return posixpath.join(parent_path, name)


def path_components(path: str) -> List[str]:
    """
    Split a path into its non-empty components.

    Leading, trailing and repeated separators do not produce empty components.
    :param path:
    :return:
    """
    return [component for component in path.split(posixpath.sep) if component]


def derive_root_token(path: str, index: int = ROOT_TOKEN_INDEX) -> Optional[str]:
    """
    Take the component at a fixed position in the path - None if the path is too shallow.

    :param path:
    :param index: Zero based position of the component to return
    :return:
    """
    if index < 0:
        raise ValueError(f"index must not be negative - got {index}")

    components = path_components(path)
    if index < len(components):
        return components[index]
    return None


def rebase_path(path: str, root_path: str, base_path: str) -> str:
    """
    Move a path below the watched root so it sits in the same place below the base path.

    :param path: Must be inside root_path
    :param root_path:
    :param base_path:
    :return:
    """
    relative = posixpath.relpath(path, root_path)
    if relative == posixpath.curdir:
        return posixpath.normpath(base_path)
    if relative == posixpath.pardir or relative.startswith(posixpath.pardir + posixpath.sep):
        raise ValueError(f"{path} is not inside {root_path}")
    return posixpath.join(posixpath.normpath(base_path), relative)
