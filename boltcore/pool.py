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
Connection pooling.

The pool lends connections to sessions, one connection per session, and
takes them back once the session closes. Healthy connections are kept for
reuse; defunct or closed ones are thrown away. A pool is safe to share
between threads.
"""

from logging import getLogger
from threading import RLock

from boltcore.config import DEFAULT_MAX_POOL_SIZE
from boltcore.errors import DriverError


log = getLogger("boltcore.pool")


class ConnectionPool:
    """ Pool of connections to a single server.

    Args:
        connector: callable returning a new, initialised `Connection`
        max_size: maximum number of connections lent out at once
    """

    def __init__(self, connector, max_size=DEFAULT_MAX_POOL_SIZE):
        self.connector = connector
        self.max_size = max_size
        self._idle = []
        self._in_use = set()
        self._closed = False
        self._lock = RLock()

    def __repr__(self):
        return "<ConnectionPool in_use=%d idle=%d>" % (self.in_use, self.idle)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @property
    def in_use(self):
        return len(self._in_use)

    @property
    def idle(self):
        return len(self._idle)

    @property
    def closed(self):
        return self._closed

    def acquire(self):
        """ Lend out a connection, reusing an idle one where possible.

        Raises:
            DriverError: if the pool is closed or already at full capacity
        """
        with self._lock:
            if self._closed:
                raise DriverError("Connection pool is closed")
            while self._idle:
                cx = self._idle.pop()
                if cx.closed or cx.defunct:
                    continue
                self._in_use.add(cx)
                log.debug("Reusing %r", cx)
                return cx
            if len(self._in_use) >= self.max_size:
                raise DriverError("Connection pool exhausted (%d connections in "
                                  "use)" % len(self._in_use))
            cx = self.connector()
            self._in_use.add(cx)
            log.debug("Opened %r", cx)
            return cx

    def release(self, cx):
        """ Take back a connection. Connections that are no longer usable,
        or that come back after the pool has closed, are closed instead of
        kept.
        """
        with self._lock:
            self._in_use.discard(cx)
            if self._closed or cx.closed or cx.defunct:
                cx.close()
            else:
                self._idle.append(cx)

    def close(self):
        """ Close all idle connections. Connections currently lent out are
        closed as they come back. Closing more than once has no further
        effect.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
            idle, self._idle = self._idle, []
        for cx in idle:
            cx.close()
