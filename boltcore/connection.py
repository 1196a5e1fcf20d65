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
Bolt connections.

A Bolt connection operates under a client-server model whereby a client sends
requests to a server and the server responds accordingly. There is no
mechanism for a server to send a message at any other time. The server
answers requests strictly in the order in which they were received, so a
client may send several requests before reading any replies (pipelining) as
long as it keeps track of which reply belongs to which request. Here, that is
done with a queue of `Response` handlers, one per request sent.

When a request fails, the server replies with FAILURE and then IGNORES every
following request until the failure has been acknowledged by a RESET. The
`Connection` remembers the failure and `reset_if_failed` carries out that
acknowledgement. Callers run it before every new piece of work so that a
failed statement never poisons the next one.
"""

from collections import deque
from logging import getLogger
from struct import error as StructError

from boltcore.chunking import ChunkedInput, ChunkedOutput
from boltcore.config import DEFAULT_CHUNK_SIZE, DEFAULT_USER_AGENT, MAX_BOLT_VERSION
from boltcore.errors import CypherError, ProtocolError, ServiceUnavailable
from boltcore.packstream import PackStreamCodec, Structure


# The client sends messages from the selection below:
CLIENT = [None] * (MAX_BOLT_VERSION + 1)
CLIENT[1] = {
    "INIT": 0x01,               # INIT <user_agent> <auth_token>
                                # -> SUCCESS - connection initialised
                                # -> FAILURE - init failed, disconnect
    "ACK_FAILURE": 0x0E,        # ACK_FAILURE
                                # -> SUCCESS - failure acknowledged
    "RESET": 0x0F,              # RESET
                                # -> SUCCESS - failure acknowledged, stream
                                #    discarded, transaction rolled back
    "RUN": 0x10,                # RUN <statement> <parameters>
                                # -> SUCCESS <fields>
                                # -> FAILURE - statement not accepted
                                # -> IGNORED - due to prior failure
    "DISCARD_ALL": 0x2F,        # DISCARD_ALL
                                # -> SUCCESS <summary>
    "PULL_ALL": 0x3F,           # PULL_ALL
                                # .. [RECORD*]
                                # -> SUCCESS <summary>
}
CLIENT[2] = CLIENT[1]
CLIENT[3] = {
    "HELLO": 0x01,              # HELLO <headers>
    "GOODBYE": 0x02,            # GOODBYE (no reply, server hangs up)
    "RESET": 0x0F,              # RESET
    "RUN": 0x10,                # RUN <statement> <parameters> <metadata>
    "BEGIN": 0x11,              # BEGIN <metadata>
    "COMMIT": 0x12,             # COMMIT
    "ROLLBACK": 0x13,           # ROLLBACK
    "DISCARD_ALL": 0x2F,        # DISCARD_ALL
    "PULL_ALL": 0x3F,           # PULL_ALL
}

# The server responds with one or more of these for each request:
SERVER = {
    "SUCCESS": 0x70,            # SUCCESS <metadata>
    "RECORD": 0x71,             # RECORD <values>
    "IGNORED": 0x7E,            # IGNORED
    "FAILURE": 0x7F,            # FAILURE <metadata>
}


log = getLogger("boltcore.connection")


class Response:
    """ Handler for the reply to a single request. A reply is complete once
    a summary message (SUCCESS, FAILURE or IGNORED) has arrived.
    """

    def __init__(self):
        self.metadata = None
        self.ignored = False

    def complete(self):
        return self.metadata is not None

    def on_success(self, metadata):
        log.debug("S: SUCCESS %r", metadata)
        self.metadata = metadata

    def on_failure(self, metadata):
        log.debug("S: FAILURE %r", metadata)
        self.metadata = metadata
        raise CypherError.hydrate(metadata)

    def on_ignored(self, metadata=None):
        log.debug("S: IGNORED")
        self.ignored = True
        self.metadata = metadata or {}

    def on_record(self, values):
        raise ProtocolError("RECORD received in reply to a request "
                            "that does not stream records")

    def on_message(self, tag, *fields):
        data = fields[0] if fields else None
        if tag == SERVER["SUCCESS"]:
            self.on_success(data or {})
        elif tag == SERVER["RECORD"]:
            self.on_record(data or [])
        elif tag == SERVER["IGNORED"]:
            self.on_ignored(data)
        elif tag == SERVER["FAILURE"]:
            self.on_failure(data or {})
        else:
            raise ProtocolError("Unexpected reply message with tag %02X received" % tag)


class QueryResponse(Response):
    """ Handler for a reply that may carry records. Records are appended to
    the `records` container; when that is `None` they are dropped.
    """

    def __init__(self, records=None):
        super(QueryResponse, self).__init__()
        self.records = records

    def on_record(self, values):
        log.debug("S: RECORD %r", values)
        if self.records is not None:
            self.records.append(values)


class Connection:
    """ The Connection sends protocol messages over a transport and matches
    up the replies. The transport is owned by this Connection instance and
    closed along with it.

    Args:
        transport: object with `write(data)`, `flush()`, `read(n)` and `close()`
        bolt_version: protocol version agreed during the handshake
        codec: message codec, PackStream by default
        chunk_size: capacity of the outgoing chunk buffer
        address: address of the server, for information only
    """

    def __init__(self, transport, bolt_version=1, codec=None,
                 chunk_size=DEFAULT_CHUNK_SIZE, address=None):
        if not 0 < bolt_version <= MAX_BOLT_VERSION or CLIENT[bolt_version] is None:
            raise ProtocolError("Bolt v%r is not supported" % (bolt_version,))
        self.transport = transport
        self.bolt_version = bolt_version
        self.codec = codec or PackStreamCodec()
        self.address = address
        self.output = ChunkedOutput(transport, chunk_size)
        self.input = ChunkedInput(transport)
        self.responses = deque()
        self.failure = None
        self.server_agent = None
        self._defunct = False
        self._closed = False

    def __repr__(self):
        return "<Connection address=%r bolt_version=%d>" % (self.address, self.bolt_version)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @property
    def failed(self):
        """ True while a FAILURE is awaiting acknowledgement.
        """
        return self.failure is not None

    @property
    def defunct(self):
        return self._defunct

    @property
    def closed(self):
        return self._closed

    def tag(self, name):
        try:
            return CLIENT[self.bolt_version][name]
        except KeyError:
            raise ProtocolError("%s is not available in Bolt v%d" % (name, self.bolt_version))

    def init(self, auth=None, user_agent=None):
        """ Initialise the connection with the server, authenticating the
        given user. This must be the first exchange on a new connection.
        A failure here closes the connection.
        """
        try:
            user, password = auth
        except (TypeError, ValueError):
            user, password = "neo4j", ""
        user_agent = user_agent or DEFAULT_USER_AGENT
        if self.bolt_version >= 3:
            args = {
                "scheme": "basic",
                "principal": user,
                "credentials": password,
                "user_agent": user_agent,
            }
            log.debug("C: HELLO %r", dict(args, credentials="..."))
            request = Structure(self.tag("HELLO"), args)
        else:
            auth_token = {
                "scheme": "basic",
                "principal": user,
                "credentials": password,
            }
            log.debug("C: INIT %r %r", user_agent, dict(auth_token, credentials="..."))
            request = Structure(self.tag("INIT"), user_agent, auth_token)
        response = Response()
        self.send_message(request, response)
        try:
            self.fetch_summary(response)
        except CypherError:
            self.close()
            raise
        self.server_agent = response.metadata.get("server")
        log.info("Initialised connection to %r (server agent %r)",
                 self.address, self.server_agent)

    def send_message(self, message, response):
        """ Encode a message, frame it and send it. The `response` handler
        is queued to receive the reply.
        """
        if self._closed:
            raise ServiceUnavailable("Connection to %r is closed" % (self.address,))
        data = self.codec.encode(message)
        self.responses.append(response)
        try:
            self.output.write(data)
            self.output.write_message_tail()
            self.output.flush()
        except OSError as error:
            self._set_defunct()
            raise ServiceUnavailable("Failed to write to %r: %s" % (self.address, error)) from error

    def receive_message(self):
        """ Receive exactly one reply message and dispatch it to the oldest
        outstanding response handler. This blocks until a message arrives or
        the connection breaks.

        Raises:
            CypherError: if the message is a FAILURE; the failure is then
                remembered until acknowledged with a RESET
            ProtocolError: if the inbound data is malformed
            ServiceUnavailable: if the transport fails
        """
        if not self.responses:
            raise ProtocolError("No outstanding request to receive a reply for")
        try:
            data = self.input.read_message()
            message = self.codec.decode(data)
        except ProtocolError:
            self._set_defunct()
            raise
        except (ValueError, StructError) as error:
            self._set_defunct()
            raise ProtocolError("Malformed message received: %s" % error) from error
        except OSError as error:
            self._set_defunct()
            raise ServiceUnavailable("Failed to read from %r: %s" % (self.address, error)) from error

        response = self.responses[0]
        try:
            response.on_message(message.tag, *message.fields)
        except CypherError as failure:
            self.failure = failure
            raise
        except ProtocolError:
            self._set_defunct()
            raise
        finally:
            if response.complete() and self.responses and self.responses[0] is response:
                self.responses.popleft()

    def fetch_summary(self, response=None):
        """ Receive messages until the given response (by default the oldest
        outstanding one) is complete.
        """
        if response is None:
            if not self.responses:
                return
            response = self.responses[0]
        while not response.complete():
            self.receive_message()

    def sync(self):
        """ Receive replies to every outstanding request. Replies are all
        drained even if a failure arrives part way through; that failure is
        raised at the end.
        """
        failure = None
        while self.responses:
            try:
                self.receive_message()
            except CypherError as error:
                failure = failure or error
        if failure is not None:
            raise failure

    def reset_if_failed(self):
        """ Acknowledge an outstanding failure, if there is one.
        """
        if self.failure is not None:
            self.reset()

    def reset(self):
        """ Return the connection to a clean state. Replies to earlier
        requests (normally IGNORED after a failure) are drained first.
        """
        log.debug("C: RESET")
        response = Response()
        self.send_message(Structure(self.tag("RESET")), response)
        while not response.complete():
            try:
                self.receive_message()
            except CypherError as failure:
                if response.complete():
                    self._set_defunct()
                    raise ProtocolError("RESET failed: %s" % failure) from failure
        self.failure = None

    def run(self, statement, parameters=None, metadata=None):
        parameters = parameters or {}
        if self.bolt_version >= 3:
            metadata = metadata or {}
            log.debug("C: RUN %r %r %r", statement, parameters, metadata)
            request = Structure(self.tag("RUN"), statement, parameters, metadata)
        elif metadata:
            raise ProtocolError("RUN metadata is not available in Bolt v%d" % self.bolt_version)
        else:
            log.debug("C: RUN %r %r", statement, parameters)
            request = Structure(self.tag("RUN"), statement, parameters)
        response = QueryResponse()
        self.send_message(request, response)
        return response

    def pull_all(self, records):
        log.debug("C: PULL_ALL")
        response = QueryResponse(records)
        self.send_message(Structure(self.tag("PULL_ALL")), response)
        return response

    def discard_all(self):
        log.debug("C: DISCARD_ALL")
        response = QueryResponse()
        self.send_message(Structure(self.tag("DISCARD_ALL")), response)
        return response

    def begin(self, metadata=None):
        """ Open an explicit transaction. Returns the response that
        completes once the server has confirmed.
        """
        if self.bolt_version >= 3:
            metadata = metadata or {}
            log.debug("C: BEGIN %r", metadata)
            response = Response()
            self.send_message(Structure(self.tag("BEGIN"), metadata), response)
            return response
        elif metadata:
            raise ProtocolError("Transaction metadata is not available in "
                                "Bolt v%d" % self.bolt_version)
        else:
            self.run("BEGIN")
            return self.discard_all()

    def commit(self):
        if self.bolt_version >= 3:
            log.debug("C: COMMIT")
            response = Response()
            self.send_message(Structure(self.tag("COMMIT")), response)
            return response
        else:
            self.run("COMMIT")
            return self.discard_all()

    def rollback(self):
        if self.bolt_version >= 3:
            log.debug("C: ROLLBACK")
            response = Response()
            self.send_message(Structure(self.tag("ROLLBACK")), response)
            return response
        else:
            self.run("ROLLBACK")
            return self.discard_all()

    def close(self):
        """ Close the connection and its transport. Closing more than once
        has no further effect.
        """
        if self._closed:
            return
        if self.bolt_version >= 3 and not self._defunct:
            log.debug("C: GOODBYE")
            try:
                self.output.write(self.codec.encode(Structure(self.tag("GOODBYE"))))
                self.output.write_message_tail()
                self.output.flush()
            except OSError as error:
                log.debug("Could not send GOODBYE to %r: %s", self.address, error)
        log.debug("~~ <CLOSE> %r", self.address)
        self._closed = True
        self.responses.clear()
        self.transport.close()

    def _set_defunct(self):
        log.error("Connection to %r is defunct", self.address)
        self._defunct = True
        if not self._closed:
            self._closed = True
            self.responses.clear()
            self.transport.close()
