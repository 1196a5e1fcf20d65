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
The Session API.

A session borrows one connection from the pool for its whole lifetime and
runs statements on it, one after another, either directly or within explicit
transactions. The session keeps track of the one result that is allowed to
stream records lazily from its connection. Before anything else is sent, that
result is buffered, so results read in any order each yield their own
records.

    with driver.session() as session:
        first = session.run("UNWIND range(1, 3) AS n RETURN n")
        second = session.run("UNWIND range(4, 6) AS n RETURN n")
        print([record["n"] for record in second])   # [4, 5, 6]
        print([record["n"] for record in first])    # [1, 2, 3]

"""

from enum import Enum
from logging import getLogger

from boltcore.errors import CypherError, DriverError, SessionError, TransactionError
from boltcore.result import ResultState, StatementResult


log = getLogger("boltcore.session")


class Session:
    """ Logical context for running statements over a single connection.
    """

    def __init__(self, pool):
        self._pool = pool
        self._connection = pool.acquire()
        self._current = None
        self._transaction = None
        self._closed = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @property
    def connection(self):
        return self._connection

    @property
    def closed(self):
        return self._closed

    def run(self, statement, parameters=None, **kwparameters):
        """ Run a statement outside of an explicit transaction.

        Returns:
            a `StatementResult` from which records may be read

        Raises:
            CypherError: if the server rejects the statement
            TransactionError: if an explicit transaction is open
        """
        self._assert_open()
        if self._transaction is not None:
            raise TransactionError("Statements cannot be run directly on a "
                                   "session with an open transaction")
        return self._run(statement, parameters, **kwparameters)

    def begin_transaction(self, metadata=None):
        """ Open an explicit transaction.
        """
        self._assert_open()
        if self._transaction is not None:
            raise TransactionError("Explicit transaction already open")
        self._prepare()
        self._transaction = Transaction(self, metadata)
        return self._transaction

    def close(self):
        """ Close the session, rolling back any open transaction and
        discarding any result still streaming, then hand the connection
        back to the pool. Closing more than once has no further effect.
        """
        if self._closed:
            return
        self._closed = True
        cx = self._connection
        try:
            if not cx.closed and self._transaction is not None:
                try:
                    self._transaction.close()
                except (CypherError, DriverError) as error:
                    log.warning("Failure while closing transaction: %s", error)
            if not cx.closed:
                try:
                    if self._current is not None:
                        self._current._detach()
                    cx.sync()
                except CypherError as error:
                    log.warning("Failure while closing session: %s", error)
        finally:
            self._current = None
            self._transaction = None
            self._pool.release(cx)

    def _assert_open(self):
        if self._closed:
            raise SessionError("Session is closed")

    def _buffer_current(self):
        # Free up the connection for a new request.
        current, self._current = self._current, None
        if current is not None:
            current.buffer()

    def _prepare(self):
        self._buffer_current()
        self._connection.reset_if_failed()

    def _run(self, statement, parameters=None, **kwparameters):
        parameters = dict(parameters or {}, **kwparameters)
        self._prepare()
        result = StatementResult(self._connection, statement, parameters)
        result._start()
        if result.state is ResultState.STREAMING:
            self._current = result
        return result


class TransactionState(Enum):

    ACTIVE = "active"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled back"


class Transaction:
    """ Container for multiple statements run as one unit of work. Use as a
    context manager to commit on success and roll back otherwise:

        with session.begin_transaction() as tx:
            tx.run("CREATE (a:Person {name: $name})", name="Alice")

    Setting `success` to False before the block ends forces a rollback.
    """

    def __init__(self, session, metadata=None):
        self.session = session
        self.success = None
        self.state = TransactionState.ACTIVE
        self._failed = False
        cx = session.connection
        cx.fetch_summary(cx.begin(metadata))

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.success is None:
            self.success = not bool(exc_type) and not self._doomed()
        self.close()

    @property
    def closed(self):
        return self.state is not TransactionState.ACTIVE

    def run(self, statement, parameters=None, **kwparameters):
        """ Run a statement within this transaction.

        Raises:
            CypherError: if the server rejects the statement
            TransactionError: if the transaction is closed or has failed
        """
        if self.closed:
            raise TransactionError("Transaction is %s" % self.state.value)
        # A failure may only surface while buffering the previous result
        self.session._buffer_current()
        if self._doomed():
            self._failed = True
            raise TransactionError("Transaction has failed and can only be rolled back")
        try:
            return self.session._run(statement, parameters, **kwparameters)
        except CypherError:
            self._failed = True
            raise

    def commit(self):
        self.success = True
        self.close()

    def rollback(self):
        self.success = False
        self.close()

    def close(self):
        """ Commit the transaction if marked as successful, roll it back
        otherwise. Any result still streaming is buffered first. Closing
        more than once has no further effect.
        """
        if self.closed:
            return
        session = self.session
        cx = session.connection
        try:
            session._buffer_current()
            if self._doomed():
                # RESET rolls back the transaction on the server
                cx.reset_if_failed()
                self.state = TransactionState.ROLLED_BACK
                if self.success:
                    raise TransactionError("Transaction failed and has been rolled back")
            elif self.success:
                cx.fetch_summary(cx.commit())
                self.state = TransactionState.COMMITTED
            else:
                cx.fetch_summary(cx.rollback())
                self.state = TransactionState.ROLLED_BACK
        finally:
            if self.state is TransactionState.ACTIVE:
                self.state = TransactionState.ROLLED_BACK
            session._transaction = None

    def _doomed(self):
        return self._failed or self.session.connection.failed
