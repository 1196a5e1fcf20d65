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
Transports carry raw bytes between a connection and the server. A transport
needs only four methods:

    write(data)  queue bytes for sending
    flush()      send everything queued
    read(n)      return up to n bytes; empty when the peer has gone away
    close()

`SocketTransport` adapts a connected socket. Tests use the scripted
transport in `boltcore.stub` instead.
"""

from logging import getLogger


log = getLogger("boltcore.transport")


class SocketTransport:

    def __init__(self, s):
        self.socket = s
        self._data = []

    def __repr__(self):
        return "<SocketTransport fileno=%d>" % self.socket.fileno()

    def write(self, data):
        self._data.append(bytes(data))
        return len(data)

    def flush(self):
        data, self._data = b"".join(self._data), []
        if data:
            self.socket.sendall(data)

    def read(self, n):
        return self.socket.recv(n)

    def close(self):
        self._data = []
        try:
            self.socket.close()
        except OSError as error:
            log.debug("Error closing socket: %s", error)
