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


from pytest import mark, raises

from boltcore.bytetools import h, unh
from boltcore.chunking import ChunkCollector, ChunkedInput, ChunkedOutput, chunked
from boltcore.errors import ProtocolError


def writes(collector):
    return [h(data) for data in collector.writes]


class ReadableBytes:
    """ Transport handing out at most `step` bytes per read.
    """

    def __init__(self, data, step=None):
        self.data = bytes(data)
        self.step = step
        self.offset = 0

    def read(self, n):
        if self.step:
            n = min(n, self.step)
        data = self.data[self.offset:self.offset + n]
        self.offset += len(data)
        return data


@mark.parametrize("capacity", [-1, 0, 1, 7, 65538, 100000])
def test_out_of_range_capacity_is_rejected(capacity):
    collector = ChunkCollector()
    with raises(ValueError):
        _ = ChunkedOutput(collector, capacity)
    assert collector.writes == []
    assert collector.flushes == 0


@mark.parametrize("capacity", [8, 9, 8192, 65537])
def test_capacity_within_range_is_accepted(capacity):
    output = ChunkedOutput(ChunkCollector(), capacity)
    assert output.capacity == capacity


def test_message_that_fits_in_one_chunk():
    # Given
    collector = ChunkCollector()
    output = ChunkedOutput(collector, 16)

    # When
    output.write(b"\x01\x02\x03")
    output.write_message_tail()
    output.flush()

    # Then
    assert writes(collector) == ["00:03:01:02:03:00:00"]
    assert collector.flushes == 1


def test_message_split_across_chunks():
    # Given
    collector = ChunkCollector()
    output = ChunkedOutput(collector, 8)

    # When
    output.write(unh("01:02:03:04:05:06:07:08:09:0A"))
    output.write_message_tail()
    output.flush()

    # Then
    assert writes(collector) == ["00:06:01:02:03:04:05:06",
                                 "00:04:07:08:09:0A:00:00"]
    assert collector.flushes == 2


def test_long_message_split_into_many_chunks():
    collector = ChunkCollector()
    output = ChunkedOutput(collector, 8)
    output.write(bytes(range(1, 21)))
    output.write_message_tail()
    output.flush()
    assert writes(collector) == ["00:06:01:02:03:04:05:06",
                                 "00:06:07:08:09:0A:0B:0C",
                                 "00:06:0D:0E:0F:10:11:12",
                                 "00:02:13:14:00:00"]
    assert collector.flushes == 4


def test_tail_that_exactly_fills_the_buffer_is_sent_with_the_data():
    collector = ChunkCollector()
    output = ChunkedOutput(collector, 10)
    output.write(unh("01:02:03:04:05:06"))
    output.write_message_tail()
    assert writes(collector) == ["00:06:01:02:03:04:05:06:00:00"]
    assert collector.flushes == 1
    output.flush()
    assert collector.flushes == 1


def test_tail_with_no_room_is_sent_separately():
    # Given
    collector = ChunkCollector()
    output = ChunkedOutput(collector, 8)

    # When
    output.write(unh("01:02:03:04:05:06"))
    output.write_message_tail()

    # Then
    assert writes(collector) == ["00:06:01:02:03:04:05:06", "00:00"]
    assert collector.flushes == 2


def test_tail_with_one_byte_of_room_is_sent_separately():
    collector = ChunkCollector()
    output = ChunkedOutput(collector, 8)
    output.write(unh("01:02:03:04:05"))
    output.write_message_tail()
    assert writes(collector) == ["00:05:01:02:03:04:05", "00:00"]
    assert collector.flushes == 2


def test_tail_with_room_waits_for_flush():
    collector = ChunkCollector()
    output = ChunkedOutput(collector, 16)
    output.write(b"\x01")
    output.write_message_tail()
    assert collector.writes == []
    output.flush()
    assert writes(collector) == ["00:01:01:00:00"]


def test_next_chunk_opens_behind_buffered_tail():
    # Given
    collector = ChunkCollector()
    output = ChunkedOutput(collector, 10)

    # When
    output.write(unh("01:02:03"))
    output.write_message_tail()
    output.write(unh("0A"))
    output.flush()

    # Then
    assert writes(collector) == ["00:03:01:02:03:00:00:00:01:0A"]
    assert collector.flushes == 1


def test_next_chunk_goes_to_fresh_buffer_when_too_little_room_behind_tail():
    collector = ChunkCollector()
    output = ChunkedOutput(collector, 10)
    output.write(unh("01:02:03:04"))
    output.write_message_tail()
    output.write(unh("0A"))
    output.flush()
    assert writes(collector) == ["00:04:01:02:03:04:00:00", "00:01:0A"]
    assert collector.flushes == 2


def test_tail_after_flush_is_sent_on_next_flush():
    # Given
    collector = ChunkCollector()
    output = ChunkedOutput(collector, 8)

    # When
    output.write(unh("01:02:03:04"))
    output.flush()
    output.write_message_tail()
    output.flush()

    # Then
    assert writes(collector) == ["00:04:01:02:03:04", "00:00"]
    assert collector.flushes == 2


def test_flush_with_nothing_pending_does_nothing():
    collector = ChunkCollector()
    output = ChunkedOutput(collector, 8)
    output.flush()
    assert collector.writes == []
    assert collector.flushes == 0
    output.write(b"\x01")
    output.flush()
    output.flush()
    assert writes(collector) == ["00:01:01"]
    assert collector.flushes == 1


def test_largest_chunk():
    collector = ChunkCollector()
    output = ChunkedOutput(collector, 65537)
    output.write(bytes(65535))
    output.write_message_tail()
    output.flush()
    assert len(collector.writes) == 2
    assert collector.writes[0][:2] == b"\xFF\xFF"
    assert len(collector.writes[0]) == 65537
    assert collector.writes[1] == b"\x00\x00"


def test_byte_writes_match_bulk_writes():
    data = bytes(range(1, 30))
    bulk = ChunkCollector()
    output = ChunkedOutput(bulk, 11)
    output.write(data)
    output.write_message_tail()
    output.flush()
    single = ChunkCollector()
    output = ChunkedOutput(single, 11)
    for b in data:
        output.write_byte(b)
    output.write_message_tail()
    output.flush()
    assert single.writes == bulk.writes
    assert single.flushes == bulk.flushes


def test_chunked_helper():
    assert h(chunked(b"\x01\x02\x03")) == "00:03:01:02:03:00:00"


def test_input_reassembles_message_from_chunks():
    transport = ReadableBytes(unh("00:02:01:02 00:03:03:04:05 00:00"))
    assert ChunkedInput(transport).read_message() == b"\x01\x02\x03\x04\x05"


def test_input_copes_with_short_reads():
    transport = ReadableBytes(unh("00:04:01:02:03:04 00:00 00:01:FF 00:00"), step=1)
    input_ = ChunkedInput(transport)
    assert input_.read_message() == b"\x01\x02\x03\x04"
    assert input_.read_message() == b"\xFF"


def test_input_skips_empty_messages():
    transport = ReadableBytes(unh("00:00 00:00 00:01:2A 00:00"))
    assert ChunkedInput(transport).read_message() == b"\x2A"


def test_input_reads_what_output_writes():
    data = bytes(range(256)) * 3
    transport = ReadableBytes(chunked(data, 9))
    assert ChunkedInput(transport).read_message() == data


@mark.parametrize("data", ["00", "00:05:01:02", "00:02:01:02"])
def test_input_closed_mid_message_is_a_protocol_error(data):
    transport = ReadableBytes(unh(data))
    with raises(ProtocolError):
        _ = ChunkedInput(transport).read_message()


def test_full_buffer_is_sent_on_flush():
    collector = ChunkCollector()
    output = ChunkedOutput(collector, 8)
    output.write(unh("01:02:03:04:05:06"))
    assert collector.writes == []
    output.flush()
    assert writes(collector) == ["00:06:01:02:03:04:05:06"]
    assert collector.flushes == 1


def test_tail_filling_smallest_buffer_exactly():
    collector = ChunkCollector()
    output = ChunkedOutput(collector, 8)
    output.write(unh("01:02:03:04"))
    output.write_message_tail()
    assert writes(collector) == ["00:04:01:02:03:04:00:00"]
    assert collector.flushes == 1
