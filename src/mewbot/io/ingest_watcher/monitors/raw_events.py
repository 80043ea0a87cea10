# SPDX-FileCopyrightText: 2023 Mewbot Developers <mewbot@quicksilver.london>
#
# SPDX-License-Identifier: BSD-2-Clause

"""
Decoding of the raw bytes read off an inotify file descriptor.

Each record is a fixed size header (wd, mask, cookie, len) followed by len bytes of NUL padded
name.
inotify_simple will happily return a short name for a truncated record - here a truncated
record is an error, as the event it describes cannot be trusted.
"""

from __future__ import annotations

from typing import List

import os
import struct

from inotify_simple import Event, flags

from mewbot.io.ingest_watcher.errors import ReadFailure

EVENT_FORMAT = "iIII"
EVENT_HEADER_SIZE = struct.calcsize(EVENT_FORMAT)

# Room for 1024 events with reasonably short names - same sizing as the C examples in inotify(7)
READ_BUFFER_SIZE = 1024 * (EVENT_HEADER_SIZE + 16)


def decode_events(data: bytes) -> List[Event]:
    """
    Turn a batch of raw bytes from inotify into a list of events.

    :param data: Everything returned by a single read
    :return:
    :raises ReadFailure: If the batch ends part way through a record
    """
    events: List[Event] = []
    pos = 0
    total = len(data)

    while pos < total:
        if total - pos < EVENT_HEADER_SIZE:
            raise ReadFailure(
                f"Truncated event header at offset {pos} - "
                f"{total - pos} of {EVENT_HEADER_SIZE} bytes present"
            )

        wd, mask, cookie, name_size = struct.unpack_from(EVENT_FORMAT, data, pos)
        pos += EVENT_HEADER_SIZE

        if pos + name_size > total:
            raise ReadFailure(
                f"Truncated event name at offset {pos} - "
                f"{total - pos} of {name_size} bytes present"
            )

        name = data[pos : pos + name_size].split(b"\x00", 1)[0]
        pos += name_size

        events.append(Event(wd, mask, cookie, os.fsdecode(name)))

    return events


def describe_mask(mask: int) -> str:
    """
    Human readable version of an event mask - for the logs.

    :param mask:
    :return:
    """
    return "|".join(flag.name for flag in flags.from_mask(mask)) or "0"
