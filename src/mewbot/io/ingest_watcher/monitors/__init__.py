# SPDX-FileCopyrightText: 2023 Mewbot Developers <mewbot@quicksilver.london>
#
# SPDX-License-Identifier: BSD-2-Clause

"""
The moving parts behind the ingest watcher input - registry, decoding, dispatch.
"""

from __future__ import annotations

from mewbot.io.ingest_watcher.monitors.dispatcher import (
    DEFAULT_WATCH_MASK,
    Classification,
    DispatchDecision,
    IgnoreReason,
    IngestDispatcher,
)
from mewbot.io.ingest_watcher.monitors.notifier import InotifyNotifier
from mewbot.io.ingest_watcher.monitors.registry import WatchEntry, WatchRegistry

__all__ = [
    "DEFAULT_WATCH_MASK",
    "Classification",
    "DispatchDecision",
    "IgnoreReason",
    "IngestDispatcher",
    "InotifyNotifier",
    "WatchEntry",
    "WatchRegistry",
]
