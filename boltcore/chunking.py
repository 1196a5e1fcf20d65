#!/usr/bin/env python
# coding: utf-8

# Copyright (c) 2002-2016 "Neo Technology,"
# Network Engine for Objects in Lund AB [http://neotechnology.com]
#
# This file is part of Neo4j.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Message chunking for Bolt.

Once a message has been serialised, it is not written to the network in one
piece. Instead, it is split into one or more chunks, each prefixed by a 16-bit
big-endian size header. The end of the message is marked by a chunk of size
zero, i.e. two zero bytes:

    chunk      := size:UINT_16 data:byte[size]     (size > 0)
    end-marker := 00:00                             (size == 0)
    message    := chunk* end-marker

For example, the 10-byte message 01:02:...:0A framed with a buffer capacity of
8 bytes travels as:

    00:06 01:02:03:04:05:06
    00:04 07:08:09:0A
    00:00

Chunk boundaries carry no meaning. A receiver must simply glue the chunk data
back together until it sees the end marker.
"""

from logging import getLogger
from struct import pack_into as raw_pack_into, unpack as raw_unpack

from boltcore.bytetools import h
from boltcore.config import DEFAULT_CHUNK_SIZE, MAX_CHUNK_SIZE, MIN_CHUNK_SIZE
from boltcore.errors import ProtocolError


UINT_16 = ">H"

END_OF_MESSAGE = b"\x00\x00"


log = getLogger("boltcore.chunking")


class ChunkedOutput:
    """ Writer that packs outgoing message data into chunks of bounded size.

    The writer owns a buffer of `capacity` bytes into which chunks are
    assembled. Two bytes are reserved at the start of each chunk for its
    header; this is patched with the real size once the chunk is closed. A
    full buffer is written to the transport as a single piece, followed by a
    transport flush.

    The buffer may hold several chunks at once: a message tail is usually
    placed directly after the data it terminates and the next message may
    begin directly after that.
    """

    def __init__(self, transport, capacity=DEFAULT_CHUNK_SIZE):
        if not MIN_CHUNK_SIZE <= capacity <= MAX_CHUNK_SIZE:
            raise ValueError("Chunk capacity must be between {} and {} "
                             "(got {})".format(MIN_CHUNK_SIZE, MAX_CHUNK_SIZE, capacity))
        self.transport = transport
        self._capacity = capacity
        self._buffer = bytearray(capacity)
        self._end = 0
        self._header = None     # offset of the open chunk's header, if any

    @property
    def capacity(self):
        return self._capacity

    def write(self, data):
        """ Append message data, sending full buffers as required.
        """
        data = memoryview(data).cast("B")
        size = len(data)
        offset = 0
        while offset < size:
            self._open_chunk()
            n = min(self._capacity - self._end, size - offset)
            self._buffer[self._end:self._end + n] = data[offset:offset + n]
            self._end += n
            offset += n

    def write_byte(self, b):
        self._open_chunk()
        self._buffer[self._end] = b
        self._end += 1

    def write_message_tail(self):
        """ Mark the end of the current message.

        If there is room, the end marker is placed in the buffer behind the
        data it terminates, and the buffer is only sent if that fills it
        exactly. Otherwise the pending data goes out on its own and the end
        marker follows immediately as a separate write.
        """
        self._close_chunk()
        if self._capacity - self._end >= 2:
            self._buffer[self._end:self._end + 2] = END_OF_MESSAGE
            self._end += 2
            if self._end == self._capacity:
                self._send()
        else:
            self._send()
            self._buffer[0:2] = END_OF_MESSAGE
            self._end = 2
            self._send()

    def flush(self):
        """ Send everything pending. Does nothing, not even a transport
        flush, when nothing has been written since the last send.
        """
        if self._end:
            self._close_chunk()
            self._send()

    def _open_chunk(self):
        # Ensure a chunk is open with room for at least one more byte.
        if self._header is None:
            if self._capacity - self._end < 3:
                self._send()
            self._header = self._end
            self._end += 2
        elif self._end == self._capacity:
            self._close_chunk()
            self._send()
            self._header = 0
            self._end = 2

    def _close_chunk(self):
        if self._header is not None:
            size = self._end - self._header - 2
            raw_pack_into(UINT_16, self._buffer, self._header, size)
            self._header = None

    def _send(self):
        data = bytes(self._buffer[:self._end])
        log.debug("C: <CHUNKS> %s", h(data))
        self.transport.write(data)
        self.transport.flush()
        self._end = 0


class ChunkedInput:
    """ Reader that reassembles complete messages from inbound chunks.
    """

    def __init__(self, transport):
        self.transport = transport

    def read_message(self):
        """ Read chunks up to and including the next end marker and return
        the message data they carry. Empty messages are skipped: a lone end
        marker is a NOOP keep-alive the server may send between messages,
        not a message in its own right.
        """
        data = []
        while True:
            size, = raw_unpack(UINT_16, self._read(2))
            if size:
                data.append(self._read(size))
            elif data:
                return b"".join(data)
            else:
                log.debug("S: <NOOP>")

    def _read(self, n):
        data = bytearray()
        while len(data) < n:
            more = self.transport.read(n - len(data))
            if not more:
                raise ProtocolError("Connection closed with {} of {} expected bytes "
                                    "unread".format(n - len(data), n))
            data += more
        return bytes(data)


class ChunkCollector:
    """ Transport stand-in that keeps every write in memory.
    """

    def __init__(self):
        self.writes = []
        self.flushes = 0

    def write(self, data):
        self.writes.append(bytes(data))
        return len(data)

    def flush(self):
        self.flushes += 1

    def getvalue(self):
        return b"".join(self.writes)


def chunked(data, capacity=MAX_CHUNK_SIZE):
    """ Frame `data` as a single complete message and return the bytes that
    would travel over the wire.

        >>> h(chunked(b"\x01\x02\x03"))
        '00:03:01:02:03:00:00'

    """
    collector = ChunkCollector()
    output = ChunkedOutput(collector, capacity)
    output.write(data)
    output.write_message_tail()
    output.flush()
    return collector.getvalue()
