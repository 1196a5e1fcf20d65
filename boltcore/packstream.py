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
PackStream message codec.

Connections do not care how a message turns into bytes. They hand each
outgoing message to a codec with `encode(message) -> bytes` and each complete
inbound message to `decode(data) -> message`. This module supplies the
standard codec, which serialises messages as PackStream structures: a marker
byte carrying the field count, a tag byte naming the message, then the fields.

    RUN "RETURN 1" {}  ->  B2:10:88:52:45:54:55:52:4E:20:31:A0

Only the value types that appear in statements, parameters and summary
metadata are handled here: null, boolean, integer, float, string, bytes, list,
dictionary and nested structures.
"""

from struct import pack as raw_pack, unpack_from as raw_unpack


INT_8 = ">b"        # signed 8-bit integer (two's complement)
INT_16 = ">h"       # signed 16-bit integer (two's complement)
INT_32 = ">i"       # signed 32-bit integer (two's complement)
INT_64 = ">q"       # signed 64-bit integer (two's complement)
UINT_8 = ">B"       # unsigned 8-bit integer
UINT_16 = ">H"      # unsigned 16-bit integer
UINT_32 = ">I"      # unsigned 32-bit integer
FLOAT_64 = ">d"     # IEEE double-precision floating-point format

SIZES = {
    INT_8: 1, INT_16: 2, INT_32: 4, INT_64: 8,
    UINT_8: 1, UINT_16: 2, UINT_32: 4, FLOAT_64: 8,
}


class Structure:
    """ A composite value identified by a `tag` byte. Every Bolt message is
    a structure.
    """

    def __init__(self, tag, *fields):
        self.tag = tag
        self.fields = fields

    def __eq__(self, other):
        return (isinstance(other, Structure) and
                self.tag == other.tag and self.fields == other.fields)

    def __ne__(self, other):
        return not self.__eq__(other)

    def __repr__(self):
        return "Structure<0x%02X>%r" % (self.tag, self.fields)


class Packer:
    """ Serialises values into a list of byte pieces.
    """

    def __init__(self):
        self.data = []

    def pack(self, value):
        append = self.data.append

        if value is None:
            append(b"\xC0")

        elif value is True:
            append(b"\xC3")
        elif value is False:
            append(b"\xC2")

        elif isinstance(value, int):
            if -0x10 <= value < 0x80:
                append(raw_pack(INT_8, value))                  # TINY_INT
            elif -0x80 <= value < 0x80:
                append(b"\xC8" + raw_pack(INT_8, value))
            elif -0x8000 <= value < 0x8000:
                append(b"\xC9" + raw_pack(INT_16, value))
            elif -0x80000000 <= value < 0x80000000:
                append(b"\xCA" + raw_pack(INT_32, value))
            elif -0x8000000000000000 <= value < 0x8000000000000000:
                append(b"\xCB" + raw_pack(INT_64, value))
            else:
                raise ValueError("Integer %d out of packable range" % value)

        elif isinstance(value, float):
            append(b"\xC1" + raw_pack(FLOAT_64, value))

        elif isinstance(value, str):
            utf_8 = value.encode("UTF-8")
            self.pack_header(len(utf_8), 0x80, b"\xD0", b"\xD1", b"\xD2")
            append(utf_8)

        elif isinstance(value, (bytes, bytearray)):
            size = len(value)
            if size < 0x100:
                append(b"\xCC" + raw_pack(UINT_8, size))
            elif size < 0x10000:
                append(b"\xCD" + raw_pack(UINT_16, size))
            elif size < 0x100000000:
                append(b"\xCE" + raw_pack(UINT_32, size))
            else:
                raise ValueError("Byte array too long to pack")
            append(bytes(value))

        elif isinstance(value, (list, tuple)):
            self.pack_header(len(value), 0x90, b"\xD4", b"\xD5", b"\xD6")
            for item in value:
                self.pack(item)

        elif isinstance(value, dict):
            self.pack_header(len(value), 0xA0, b"\xD8", b"\xD9", b"\xDA")
            for key, item in value.items():
                if not isinstance(key, str):
                    raise TypeError("Dictionary keys must be strings, not %r" % (key,))
                self.pack(key)
                self.pack(item)

        elif isinstance(value, Structure):
            size = len(value.fields)
            if size < 0x10:
                append(raw_pack(UINT_8, 0xB0 + size))
            elif size < 0x100:
                append(b"\xDC" + raw_pack(UINT_8, size))
            elif size < 0x10000:
                append(b"\xDD" + raw_pack(UINT_16, size))
            else:
                raise ValueError("Structure too big to pack")
            append(raw_pack(UINT_8, value.tag))
            for field in value.fields:
                self.pack(field)

        else:
            raise TypeError("Cannot pack value %r" % (value,))

    def pack_header(self, size, tiny, marker_8, marker_16, marker_32):
        if size < 0x10:
            self.data.append(raw_pack(UINT_8, tiny + size))
        elif size < 0x100:
            self.data.append(marker_8 + raw_pack(UINT_8, size))
        elif size < 0x10000:
            self.data.append(marker_16 + raw_pack(UINT_16, size))
        elif size < 0x100000000:
            self.data.append(marker_32 + raw_pack(UINT_32, size))
        else:
            raise ValueError("Collection too large to pack")

    def getvalue(self):
        return b"".join(self.data)


def pack(*values):
    """ Serialise each value in turn and return the concatenated bytes.
    """
    packer = Packer()
    for value in values:
        packer.pack(value)
    return packer.getvalue()


class Unpacker:
    """ Extracts values from packed data, starting at `offset`.
    """

    def __init__(self, data, offset=0):
        self.data = data
        self.offset = offset

    def read(self, type_code):
        end = self.offset + SIZES[type_code]
        if end > len(self.data):
            raise ValueError("Packed data ends %d bytes short" % (end - len(self.data)))
        value, = raw_unpack(type_code, self.data, self.offset)
        self.offset = end
        return value

    def read_bytes(self, size):
        end = self.offset + size
        if end > len(self.data):
            raise ValueError("Packed data ends %d bytes short" % (end - len(self.data)))
        value = bytes(self.data[self.offset:end])
        self.offset = end
        return value

    def unpack(self):
        marker = self.read(UINT_8)
        high = marker & 0xF0
        size = marker & 0x0F

        if marker < 0x80:
            return marker
        elif marker >= 0xF0:
            return marker - 0x100
        elif high == 0x80:
            return self.read_bytes(size).decode("UTF-8")
        elif high == 0x90:
            return self.unpack_list(size)
        elif high == 0xA0:
            return self.unpack_dict(size)
        elif high == 0xB0:
            return self.unpack_structure(size)
        elif marker == 0xC0:
            return None
        elif marker == 0xC1:
            return self.read(FLOAT_64)
        elif marker == 0xC2:
            return False
        elif marker == 0xC3:
            return True
        elif marker == 0xC8:
            return self.read(INT_8)
        elif marker == 0xC9:
            return self.read(INT_16)
        elif marker == 0xCA:
            return self.read(INT_32)
        elif marker == 0xCB:
            return self.read(INT_64)
        elif marker in (0xCC, 0xCD, 0xCE):
            return self.read_bytes(self.read_size(marker - 0xCC))
        elif marker in (0xD0, 0xD1, 0xD2):
            return self.read_bytes(self.read_size(marker - 0xD0)).decode("UTF-8")
        elif marker in (0xD4, 0xD5, 0xD6):
            return self.unpack_list(self.read_size(marker - 0xD4))
        elif marker in (0xD8, 0xD9, 0xDA):
            return self.unpack_dict(self.read_size(marker - 0xD8))
        elif marker in (0xDC, 0xDD):
            return self.unpack_structure(self.read_size(marker - 0xDC))
        else:
            raise ValueError("Unknown marker byte {:02X}".format(marker))

    def read_size(self, scale):
        return self.read((UINT_8, UINT_16, UINT_32)[scale])

    def unpack_list(self, size):
        return [self.unpack() for _ in range(size)]

    def unpack_dict(self, size):
        value = {}
        for _ in range(size):
            key = self.unpack()
            value[key] = self.unpack()
        return value

    def unpack_structure(self, size):
        tag = self.read(UINT_8)
        return Structure(tag, *(self.unpack() for _ in range(size)))


def unpack(data, offset=0):
    """ Deserialise a single value from `data`.
    """
    return Unpacker(data, offset).unpack()


class PackStreamCodec:
    """ Codec turning Bolt messages into bytes and back.
    """

    def encode(self, message):
        if not isinstance(message, Structure):
            raise TypeError("Only structures can be sent as messages")
        return pack(message)

    def decode(self, data):
        unpacker = Unpacker(data)
        message = unpacker.unpack()
        if not isinstance(message, Structure):
            raise ValueError("Message data does not hold a structure")
        if unpacker.offset != len(data):
            raise ValueError("%d trailing bytes after message" % (len(data) - unpacker.offset))
        return message
