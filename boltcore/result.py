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
Statement results.

Each statement run produces a `StatementResult`. Records are not read from the
connection until asked for, so a result starts out STREAMING. Only one result
per connection may stream at a time; before anything else is sent, the
session moves the streaming result into memory (BUFFERED) so that the
connection is free. A result read to the end while streaming becomes
EXHAUSTED. A result still streaming when its session closes is DISCARDED: its
records are lost but its summary is kept.

    STREAMING --> BUFFERED
        |  \
        |   `---> EXHAUSTED
        `-------> DISCARDED

"""

from collections import deque, namedtuple
from enum import Enum
from logging import getLogger
from warnings import warn

from boltcore.errors import CypherError


log = getLogger("boltcore.result")


Statement = namedtuple("Statement", ["text", "parameters"])


class StatementType:

    READ_ONLY = "r"
    READ_WRITE = "rw"
    WRITE_ONLY = "w"
    SCHEMA_WRITE = "s"


class ResultState(Enum):

    STREAMING = "streaming"
    BUFFERED = "buffered"
    EXHAUSTED = "exhausted"
    DISCARDED = "discarded"


class Record(tuple):
    """ An immutable, ordered collection of values, each of which can also
    be looked up by key.
    """

    __keys = ()

    def __new__(cls, keys, values):
        inst = tuple.__new__(cls, values)
        inst.__keys = tuple(keys)
        return inst

    def __repr__(self):
        return "<Record %s>" % " ".join("%s=%r" % (key, value)
                                        for key, value in zip(self.__keys, self))

    def __getitem__(self, key):
        if isinstance(key, slice):
            keys = self.__keys[key]
            return Record(keys, super(Record, self).__getitem__(key))
        return super(Record, self).__getitem__(self.index(key))

    def index(self, key):
        """ Return the index of the given item, which may be a key or an
        integer position.
        """
        if isinstance(key, int):
            if -len(self) <= key < len(self):
                return key % len(self)
            raise IndexError(key)
        elif isinstance(key, str):
            try:
                return self.__keys.index(key)
            except ValueError:
                raise KeyError(key)
        else:
            raise TypeError(key)

    def get(self, key, default=None):
        try:
            return self[key]
        except (KeyError, IndexError):
            return default

    def keys(self):
        return list(self.__keys)

    def values(self, *keys):
        if keys:
            return [self.get(key) for key in keys]
        return list(self)

    def items(self, *keys):
        if keys:
            return [(key, self.get(key)) for key in keys]
        return list(zip(self.__keys, self))

    def data(self, *keys):
        return dict(self.items(*keys))


class SummaryCounters:
    """ Update statistics reported for a statement.
    """

    nodes_created = 0
    nodes_deleted = 0
    relationships_created = 0
    relationships_deleted = 0
    properties_set = 0
    labels_added = 0
    labels_removed = 0
    indexes_added = 0
    indexes_removed = 0
    constraints_added = 0
    constraints_removed = 0

    def __init__(self, statistics):
        for key, value in dict(statistics or {}).items():
            key = key.replace("-", "_")
            setattr(self, key, value)

    def __repr__(self):
        return repr(vars(self))

    @property
    def contains_updates(self):
        return bool(self.nodes_created or self.nodes_deleted or
                    self.relationships_created or self.relationships_deleted or
                    self.properties_set or self.labels_added or self.labels_removed or
                    self.indexes_added or self.indexes_removed or
                    self.constraints_added or self.constraints_removed)


Notification = namedtuple("Notification", ["code", "title", "description",
                                           "severity", "position"])


class ResultSummary:
    """ Summary of a statement's execution, built from the metadata
    that arrives at the start and end of the result stream.
    """

    def __init__(self, statement, **metadata):
        self.statement = statement
        self.metadata = metadata
        self.statement_type = metadata.get("type")
        self.counters = SummaryCounters(metadata.get("stats"))
        self.plan = metadata.get("plan")
        self.profile = metadata.get("profile")
        self.notifications = [Notification(n.get("code"), n.get("title"),
                                           n.get("description"), n.get("severity"),
                                           n.get("position"))
                              for n in metadata.get("notifications", ())]
        self.result_available_after = metadata.get("result_available_after",
                                                   metadata.get("t_first"))
        self.result_consumed_after = metadata.get("result_consumed_after",
                                                  metadata.get("t_last"))


class StatementResult:
    """ Forward-only stream of records produced by a single statement.

    Iterate over the result to read records. While the result is streaming,
    each record is read from the connection on demand and can only be
    read once. Once buffered, the result can be iterated any number of times.
    """

    def __init__(self, connection, statement, parameters=None):
        self._connection = connection
        self.statement = Statement(statement, dict(parameters or {}))
        self._keys = ()
        self._records = deque()
        self._buffer = None
        self._header = None
        self._footer = None
        self._summary = None
        self._failure = None
        self._state = ResultState.STREAMING

    def __repr__(self):
        return "<StatementResult statement=%r state=%s>" % (self.statement.text,
                                                           self._state.value)

    def __iter__(self):
        if self._buffer is not None:
            return self._replay()
        return self._stream()

    @property
    def state(self):
        return self._state

    def keys(self):
        """ Return the keys of the records in this result.
        """
        return self._keys

    def records(self):
        return iter(self)

    def peek(self):
        """ Return the next record without consuming it, or `None` if there
        are no more records.
        """
        if self._buffer is not None:
            return self._buffer[0] if self._buffer else None
        while not self._records and self._streaming():
            self._receive()
        if self._records:
            return Record(self._keys, self._records[0])
        return None

    def single(self):
        """ Return the only record in this result, or `None` if there are
        no records. A warning is issued if there is more than one record.
        """
        records = list(self)
        if not records:
            return None
        if len(records) > 1:
            warn("Expected a result with a single record, but this result "
                 "contains %d" % len(records))
        return records[0]

    def buffer(self):
        """ Read all outstanding records into memory, freeing up the
        connection. Has no effect unless the result is streaming.

        A failure reported while buffering does not surface here; it is
        raised once the buffered records have been read.
        """
        if self._state is not ResultState.STREAMING:
            return
        try:
            self._connection.fetch_summary(self._footer)
        except CypherError as failure:
            log.debug("Failure while buffering %r: %s", self, failure)
            self._failure = failure
        self._buffer = [Record(self._keys, values) for values in self._records]
        self._records.clear()
        self._state = ResultState.BUFFERED

    def summary(self):
        """ Return the summary for this result. Outstanding records are
        buffered first, so they can still be read afterwards.
        """
        self.buffer()
        if self._failure is not None:
            raise self._failure
        if self._summary is None:
            metadata = dict(self._header.metadata or {})
            metadata.update(self._footer.metadata or {})
            self._summary = ResultSummary(self.statement, **metadata)
        return self._summary

    def consume(self):
        """ Discard any remaining records and return the summary.
        """
        if self._state is ResultState.STREAMING:
            self._state = ResultState.EXHAUSTED
            self._discard()
        elif self._buffer is not None:
            self._buffer = []
        return self.summary()

    def _start(self, metadata=None):
        # Send RUN and PULL_ALL together, then wait for the RUN reply only.
        cx = self._connection
        self._header = cx.run(self.statement.text, self.statement.parameters, metadata)
        self._footer = cx.pull_all(self._records)
        cx.fetch_summary(self._header)
        self._keys = tuple(self._header.metadata.get("fields", ()))

    def _streaming(self):
        return self._state is ResultState.STREAMING and not self._footer.complete()

    def _receive(self):
        try:
            self._connection.receive_message()
        except CypherError as failure:
            self._failure = failure
            self._state = ResultState.EXHAUSTED
            raise

    def _stream(self):
        while self._buffer is None:
            if self._records:
                yield Record(self._keys, self._records.popleft())
            elif self._streaming():
                self._receive()
            else:
                if self._state is ResultState.STREAMING:
                    self._state = ResultState.EXHAUSTED
                return
        # Buffered part way through iteration
        yield from self._replay()

    def _replay(self):
        yield from list(self._buffer)
        if self._failure is not None:
            raise self._failure

    def _discard(self):
        self._footer.records = None
        self._records.clear()
        try:
            self._connection.fetch_summary(self._footer)
        except CypherError as failure:
            self._failure = failure
            raise

    def _detach(self):
        """ Called when the owning session closes while this result is
        still streaming. Records not yet read are lost.
        """
        if self._state is ResultState.STREAMING:
            self._state = ResultState.DISCARDED
            self._discard()
