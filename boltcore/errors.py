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
Errors raised by the driver fall into four groups:

- Framing and transport errors (`ProtocolError`, `ServiceUnavailable`) are
  fatal to the connection on which they occur. That connection is closed and
  never goes back into the pool.
- Statement errors (`CypherError` and its subclasses) are reported by the
  server against a single request. The connection survives these, once the
  failure has been acknowledged with a RESET.
- Driver errors (`SessionError`, `TransactionError`) signal misuse of the
  session API.
- Nothing is raised for disposing of resources more than once or in an
  unexpected order.
"""


class BoltError(Exception):
    """ Base class for all errors raised by this package.
    """


class ProtocolError(BoltError):
    """ Raised when the byte stream or the message exchange breaks the rules
    of the protocol, e.g. a chunk arriving truncated.
    """


class ServiceUnavailable(BoltError):
    """ Raised when the server cannot be reached or the transport fails.
    """


class DriverError(BoltError):

    pass


class SessionError(DriverError):

    pass


class TransactionError(DriverError):

    pass


class CypherError(BoltError):
    """ Raised when the server replies to a request with FAILURE.
    """

    classification = None
    category = None
    title = None

    @classmethod
    def hydrate(cls, metadata):
        """ Build the most specific error class for the status code found
        in a FAILURE metadata dictionary.
        """
        code = metadata.get("code", "Neo.DatabaseError.General.UnknownError")
        message = metadata.get("message", "An unknown error occurred.")
        try:
            _, classification, category, title = code.split(".")
        except ValueError:
            classification, category, title = "DatabaseError", "General", "UnknownError"
        error_class = {
            "ClientError": ClientError,
            "TransientError": TransientError,
            "DatabaseError": DatabaseError,
        }.get(classification, cls)
        if error_class is ClientError and category == "Security":
            error_class = AuthError
        error = error_class(message)
        error.code = code
        error.message = message
        error.classification = classification
        error.category = category
        error.title = title
        error.metadata = metadata
        return error

    def __init__(self, message, **metadata):
        super(CypherError, self).__init__(message)
        self.message = message
        self.code = metadata.get("code")
        self.metadata = metadata


class ClientError(CypherError):
    """ The client sent a bad request, e.g. a statement with invalid syntax.
    Retrying the same request will fail again.
    """


class AuthError(ClientError):

    pass


class TransientError(CypherError):
    """ The request could not be carried out but may succeed if retried.
    """


class DatabaseError(CypherError):
    """ The server failed to process an otherwise valid request.
    """
