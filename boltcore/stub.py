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
Scripted stand-in for a Bolt server, for testing without a database.

A script lists the exchange expected over one connection, one message per
line. Client lines (`C:`) must match what the client sends, in order; server
lines (`S:`) are replayed as soon as every client line before them has been
matched. Fields are written as JSON. A line without a role continues the
role of the line above.

    !: BOLT 3
    !: AUTO HELLO
    !: AUTO GOODBYE

    C: RUN "RETURN $x" {"x": 1} {}
       PULL_ALL
    S: SUCCESS {"fields": ["x"]}
       RECORD [1]
       SUCCESS {"type": "r"}

Meta lines (`!:`) set the protocol version (`BOLT`) and name client messages
that are answered automatically with SUCCESS wherever they turn up (`AUTO`).
Two server commands are also available: `S: <RAW> 00:01` sends bytes as
they are and `S: <EXIT>` hangs up.
"""

from json import JSONDecoder
from logging import getLogger

from boltcore.bytetools import h, unh
from boltcore.chunking import chunked
from boltcore.config import DEFAULT_CHUNK_SIZE, MAX_BOLT_VERSION
from boltcore.connection import CLIENT, SERVER, Connection
from boltcore.errors import ServiceUnavailable
from boltcore.packstream import PackStreamCodec, Structure


log = getLogger("boltcore.stub")


def splart(s):
    parts = s.split(maxsplit=1)
    while len(parts) < 2:
        parts.append("")
    return parts


class ScriptMismatch(AssertionError):
    """ Raised when the client sends something other than what the script
    expects next.
    """

    line_no = None

    def __init__(self, message, expected, received):
        super().__init__(message)
        self.expected = expected
        self.received = received


class Line:

    line_no = None


class ClientMessageLine(Line):

    def __init__(self, tag_name, *fields):
        self.tag_name = tag_name
        self.fields = fields

    def __str__(self):
        return "C: %s %s" % (self.tag_name, " ".join(map(repr, self.fields)))

    def match(self, tag_name, fields):
        return self.tag_name == tag_name and list(self.fields) == list(fields)


class ServerMessageLine(Line):

    def __init__(self, tag_name, *fields):
        self.tag_name = tag_name
        self.fields = fields

    def __str__(self):
        return "S: %s %s" % (self.tag_name, " ".join(map(repr, self.fields)))


class ServerRawBytesLine(Line):

    def __init__(self, data):
        self.data = data

    def __str__(self):
        return "S: <RAW> %s" % h(self.data)


class ServerExitLine(Line):

    def __str__(self):
        return "S: <EXIT>"


class BoltScript:
    """ A parsed script, ready to be played by a `StubTransport`.
    """

    server_agent = "Neo4j/3.5.0"

    def __init__(self, *lines, auto=None, version=1, filename=None):
        if not 0 < version <= MAX_BOLT_VERSION:
            raise ValueError("Unsupported version {}".format(version))
        self.lines = list(lines)
        self.auto = set(auto or ())
        self.version = version
        self.filename = filename or ""
        for line in self.lines:
            if isinstance(line, (ClientMessageLine, ServerMessageLine)):
                self.tag(line)

    def __iter__(self):
        return iter(self.lines)

    def __len__(self):
        return len(self.lines)

    def tag(self, line):
        if isinstance(line, ClientMessageLine):
            table = CLIENT[self.version]
        else:
            table = SERVER
        try:
            return table[line.tag_name]
        except KeyError:
            raise ValueError("Message %r not available in Bolt v%d "
                             "(line %s)" % (line.tag_name, self.version, line.line_no))

    def tag_name(self, tag):
        for name, value in CLIENT[self.version].items():
            if value == tag:
                return name
        return "<Structure[0x%02X]>" % tag

    def on_auto_match(self, tag_name):
        if tag_name == "GOODBYE":
            return
        elif tag_name in ("INIT", "HELLO"):
            yield Structure(SERVER["SUCCESS"], {"server": self.server_agent})
        else:
            yield Structure(SERVER["SUCCESS"], {})

    @classmethod
    def parse(cls, source, filename=None):
        return cls.parse_lines(source.splitlines(), filename)

    @classmethod
    def load(cls, filename):
        with open(filename) as fin:
            return cls.parse_lines(fin, filename)

    @classmethod
    def parse_lines(cls, lines, filename=None):
        out = []
        auto = []
        version = 1
        last_role = ""
        for line_no, line in enumerate(lines, start=1):
            role, tag, fields = cls.parse_line(line)
            if not tag:
                continue
            if role:
                last_role = role
            else:
                role = last_role
            if role == "!":
                if tag == "AUTO":
                    auto.append(fields[0])
                elif tag == "BOLT":
                    version = int(str(fields[0]).split(".")[0])
                else:
                    raise ValueError("Unknown meta tag {!r}".format(tag))
                continue
            elif role == "C":
                out.append(ClientMessageLine(tag, *fields))
            elif role == "S":
                if tag == "<EXIT>":
                    out.append(ServerExitLine())
                elif tag == "<RAW>":
                    out.append(ServerRawBytesLine(unh("".join(fields))))
                elif tag.startswith("<"):
                    raise ValueError("Unknown command %r" % (tag,))
                else:
                    out.append(ServerMessageLine(tag, *fields))
            else:
                raise ValueError("Unknown role %r" % (role,))
            out[-1].line_no = line_no
        return cls(*out, auto=auto, version=version, filename=filename)

    @classmethod
    def parse_line(cls, line):
        role = ""
        tag, data = splart(line.strip())
        fields = []
        if tag.endswith(":"):
            role = tag.rstrip(":")
            tag, data = splart(data)
        if tag.startswith("<"):
            return role, tag, [data] if data else []
        decoder = JSONDecoder()
        while data:
            data = data.lstrip()
            try:
                decoded, end = decoder.raw_decode(data)
            except ValueError:
                fields.append(data)
                data = ""
            else:
                fields.append(decoded)
                data = data[end:]
        return role, tag, fields


class StubTransport:
    """ Transport that plays the server side of a `BoltScript`.

    Bytes written by the client are collected until a flush, then
    de-chunked and decoded into messages and matched against the script.
    Replies due at that point are framed and queued for `read`. Once the
    script has hung up, writes fail like those on a closed socket and reads
    return end-of-stream.
    """

    def __init__(self, script, chunk_size=DEFAULT_CHUNK_SIZE):
        self.script = script
        self.chunk_size = chunk_size
        self.codec = PackStreamCodec()
        self.closed = False
        self.hung_up = False
        self._lines = list(script)
        self._position = 0
        self._inbound = bytearray()
        self._outbound = bytearray()
        self._play()

    def __repr__(self):
        return "<StubTransport script=%r position=%d/%d>" % (
            self.script.filename, self._position, len(self._lines))

    @property
    def complete(self):
        """ True once every line of the script has been played.
        """
        return self._position == len(self._lines)

    def write(self, data):
        if self.closed or self.hung_up:
            raise BrokenPipeError("Stub server has hung up")
        self._inbound += data
        return len(data)

    def flush(self):
        if self.closed or self.hung_up:
            raise BrokenPipeError("Stub server has hung up")
        for data in self._messages():
            message = self.codec.decode(data)
            self._on_request(self.script.tag_name(message.tag), message.fields)

    def read(self, n):
        if self.closed:
            raise OSError("Read from closed transport")
        data = bytes(self._outbound[:n])
        del self._outbound[:n]
        if not data:
            log.debug("[stub] <EOF> with script at line %d of %d",
                      self._position, len(self._lines))
        return data

    def close(self):
        self.closed = True

    def _messages(self):
        # Pop every complete message from the inbound bytes.
        while True:
            chunks = []
            offset = 0
            while True:
                if len(self._inbound) < offset + 2:
                    return
                size = int.from_bytes(self._inbound[offset:offset + 2], "big")
                offset += 2
                if size == 0:
                    break
                if len(self._inbound) < offset + size:
                    return
                chunks.append(bytes(self._inbound[offset:offset + size]))
                offset += size
            del self._inbound[:offset]
            if chunks:
                yield b"".join(chunks)

    def _on_request(self, tag_name, fields):
        received = ClientMessageLine(tag_name, *fields)
        expected = None
        if self._position < len(self._lines):
            expected = self._lines[self._position]
        if isinstance(expected, ClientMessageLine) and expected.match(tag_name, fields):
            log.debug("[stub] %s", received)
            self._position += 1
            self._play()
        elif tag_name in self.script.auto:
            log.debug("[stub] (AUTO) %s", received)
            for response in self.script.on_auto_match(tag_name):
                self._reply(response)
        elif expected is None:
            raise ScriptMismatch("Expected no more lines\n"
                                 "Received «{}»".format(received), None, received)
        else:
            error = ScriptMismatch("Expected «{}»\n"
                                   "Received «{}»".format(expected, received),
                                   expected, received)
            error.line_no = expected.line_no
            raise error

    def _play(self):
        # Replay server lines up to the next client line.
        while self._position < len(self._lines):
            line = self._lines[self._position]
            if isinstance(line, ClientMessageLine):
                return
            log.debug("[stub] %s", line)
            self._position += 1
            if isinstance(line, ServerExitLine):
                self.hung_up = True
                return
            elif isinstance(line, ServerRawBytesLine):
                self._outbound += line.data
            else:
                self._reply(Structure(self.script.tag(line), *line.fields))

    def _reply(self, message):
        self._outbound += chunked(self.codec.encode(message), self.chunk_size)


class StubConnector:
    """ Connector for a `ConnectionPool` that opens each new connection
    over a `StubTransport`, playing the given scripts in turn.
    """

    def __init__(self, *scripts, auth=None, user_agent=None, chunk_size=DEFAULT_CHUNK_SIZE):
        self.scripts = list(scripts)
        self.auth = auth
        self.user_agent = user_agent
        self.chunk_size = chunk_size
        self.transports = []

    @classmethod
    def load(cls, *filenames, **kwargs):
        return cls(*map(BoltScript.load, filenames), **kwargs)

    def __call__(self):
        if not self.scripts:
            raise ServiceUnavailable("No more scripted connections available")
        script = self.scripts.pop(0)
        transport = StubTransport(script, self.chunk_size)
        self.transports.append(transport)
        cx = Connection(transport, script.version, chunk_size=self.chunk_size,
                        address=script.filename or "stub")
        cx.init(self.auth, self.user_agent)
        return cx
