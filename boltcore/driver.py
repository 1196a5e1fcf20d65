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
The driver is the entry point for applications. It owns a connection pool
for one server and hands out sessions that borrow connections from it.

    from boltcore.driver import GraphDatabase

    with GraphDatabase.driver("bolt://localhost:7687", auth=("neo4j", "password")) as driver:
        with driver.session() as session:
            for record in session.run("RETURN 1 AS x"):
                print(record["x"])

A new connection starts with a handshake: the client sends the four magic
bytes 60:60:B0:17 followed by four 32-bit version proposals in order of
preference, and the server answers with the single version it has chosen (or
zero if none is acceptable).
"""

from logging import getLogger
from socket import socket, AF_INET, AF_INET6
from struct import pack as raw_pack, unpack as raw_unpack
from urllib.parse import urlparse

from boltcore.addressing import Address, AddressList
from boltcore.auth import Auth
from boltcore.config import (DEFAULT_BOLT_VERSIONS, DEFAULT_CHUNK_SIZE,
                             DEFAULT_CONNECTION_TIMEOUT, DEFAULT_PORT, driver_config)
from boltcore.connection import Connection
from boltcore.errors import ProtocolError, ServiceUnavailable
from boltcore.pool import ConnectionPool
from boltcore.session import Session
from boltcore.transport import SocketTransport


BOLT = b"\x60\x60\xB0\x17"

UINT_32 = ">I"


log = getLogger("boltcore.driver")


def _handshake(s, address, bolt_versions):
    handshake_data = BOLT + b"".join(raw_pack(UINT_32, version)
                                     for version in bolt_versions)
    log.debug("C: <HANDSHAKE> %r", bolt_versions)
    s.sendall(handshake_data)
    raw_bolt_version = b""
    while len(raw_bolt_version) < 4:
        more = s.recv(4 - len(raw_bolt_version))
        if not more:
            raise ServiceUnavailable("Connection to %s closed during handshake" % (address,))
        raw_bolt_version += more
    bolt_version, = raw_unpack(UINT_32, raw_bolt_version)
    log.debug("S: <HANDSHAKE> %d", bolt_version)
    if bolt_version == 0 or bolt_version not in bolt_versions:
        raise ProtocolError("Could not negotiate protocol version with %s "
                            "(outcome=%d)" % (address, bolt_version))
    return bolt_version


def _open_to(address, auth, user_agent, bolt_versions, chunk_size, timeout):
    """ Attempt to open a connection to a Bolt server, given a single
    resolved socket address.
    """
    cx = None
    s = socket(family={2: AF_INET, 4: AF_INET6}[len(address)])
    try:
        s.settimeout(timeout)
        s.connect(address)
        bolt_version = _handshake(s, Address(address), bolt_versions)
        cx = Connection(SocketTransport(s), bolt_version,
                        chunk_size=chunk_size, address=Address(address))
    finally:
        if cx is None:
            s.close()
    cx.init(auth, user_agent)
    return cx


def connect(address, auth=None, user_agent=None, bolt_versions=DEFAULT_BOLT_VERSIONS,
            chunk_size=DEFAULT_CHUNK_SIZE, timeout=DEFAULT_CONNECTION_TIMEOUT):
    """ Open a connection to a Bolt server. It is here that we create a
    low-level socket connection and carry out version negotiation. Following
    this (and assuming success) an initialised `Connection` is returned,
    which takes ownership of the socket.

    Each IP address that the host name resolves to is tried in turn.

    Raises:
        ServiceUnavailable: if no connection could be opened
        ProtocolError: if no protocol version could be agreed
    """
    addresses = AddressList([address], default_port=DEFAULT_PORT)
    try:
        addresses.resolve()
    except OSError as error:
        raise ServiceUnavailable("Cannot resolve address %s: %s" % (address, error)) from error
    # Exactly four proposals, padded with zeroes
    bolt_versions = (tuple(bolt_versions) + (0, 0, 0, 0))[:4]
    log.info("Trying to open connection to «%s»", addresses)
    errors = []
    for resolved in addresses:
        try:
            return _open_to(resolved, auth, user_agent, bolt_versions, chunk_size, timeout)
        except OSError as error:
            errors.append(" ".join(map(str, error.args)))
    log.error("Could not open connection to «%s» (%r)", addresses, errors)
    raise ServiceUnavailable("Could not open connection to %s" % (address,))


class Driver:
    """ Accessor for a single Bolt server.

    Args:
        uri: "bolt://host:port"; the port defaults to 7687
        auth: `(user, password)` tuple
        config: keyword settings, see `boltcore.config.DEFAULTS`
    """

    uri_scheme = "bolt"

    def __init__(self, uri, auth=None, **config):
        parsed = urlparse(uri)
        if parsed.scheme != self.uri_scheme:
            raise ValueError("Unsupported URI scheme %r" % parsed.scheme)
        self.address = Address((parsed.hostname or "localhost", parsed.port or DEFAULT_PORT))
        self.auth = Auth(*auth) if auth else None
        self.config = driver_config(**config)
        connector = self.config["connector"] or self._connect
        self.pool = ConnectionPool(connector, self.config["max_pool_size"])
        self._closed = False

    def __repr__(self):
        return "<Driver address=%s>" % (self.address,)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @property
    def closed(self):
        return self._closed

    def session(self):
        """ Create a new session, holding one connection from the pool
        until closed.
        """
        return Session(self.pool)

    def close(self):
        """ Shut down, closing idle connections. Sessions still open keep
        their connection until they are closed. Closing more than once has
        no further effect.
        """
        if not self._closed:
            self._closed = True
            self.pool.close()

    def _connect(self):
        config = self.config
        return connect(self.address, self.auth, config["user_agent"],
                       [v for v in config["bolt_versions"] if v],
                       config["chunk_size"], config["connection_timeout"])


class GraphDatabase:
    """ Factory for `Driver` instances.
    """

    @staticmethod
    def driver(uri, auth=None, **config):
        return Driver(uri, auth, **config)
