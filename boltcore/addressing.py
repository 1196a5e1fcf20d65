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


from socket import getaddrinfo, SOCK_STREAM

from click import ParamType

from boltcore.config import DEFAULT_PORT


class Address(tuple):
    """ A socket address, as a tuple in the format expected by the
    built-in `socket.connect` method: `(host, port)` for IPv4 and
    `(host, port, flow_info, scope_id)` for IPv6.
    """

    @classmethod
    def parse(cls, s, default_host=None, default_port=None):
        """ Parse a single address string, such as "localhost:7687" or
        "[::1]:7687". Missing parts are filled from the defaults.
        """
        if not isinstance(s, str):
            raise TypeError("Address.parse requires a string argument")
        if s.startswith("["):
            # IPv6
            host, _, port = s[1:].rpartition("]")
            port = port.lstrip(":")
            return cls((host or default_host or "localhost",
                        _port(port, default_port), 0, 0))
        else:
            # IPv4
            host, _, port = s.partition(":")
            return cls((host or default_host or "localhost",
                        _port(port, default_port)))

    def __new__(cls, iterable):
        if isinstance(iterable, str) or not hasattr(iterable, "__iter__"):
            raise TypeError("Object {!r} is not a valid address "
                            "(tuple expected)".format(iterable))
        fields = tuple(iterable)
        if len(fields) not in (2, 4):
            raise ValueError("Address must have either 2 (IPv4) or 4 (IPv6) "
                             "fields, not {}".format(len(fields)))
        return tuple.__new__(cls, fields)

    def __str__(self):
        if len(self) == 4:
            return "[{}]:{}".format(*self)
        return "{}:{}".format(*self)

    def __repr__(self):
        return "{}({!r})".format(self.__class__.__name__, tuple(self))

    @property
    def host(self):
        return self[0]

    @property
    def port(self):
        return self[1]

    @property
    def port_number(self):
        return int(self[1])


def _port(value, default_port):
    if value:
        try:
            return int(value)
        except ValueError:
            return value        # service name, resolved later
    return default_port or DEFAULT_PORT


class AddressList(list):
    """ A list of socket addresses, each as a tuple of the format expected by
    the built-in `socket.connect` method.
    """

    @classmethod
    def parse(cls, s, default_host=None, default_port=None):
        """ Parse a string containing one or more socket addresses, each
        separated by whitespace.
        """
        if isinstance(s, str):
            return cls([Address.parse(addr, default_host, default_port)
                        for addr in s.split()], default_host, default_port)
        else:
            raise TypeError("AddressList.parse requires a string argument")

    def __init__(self, iterable=None, default_host=None, default_port=None):
        items = list(iterable or ())
        for item in items:
            if not isinstance(item, tuple):
                raise TypeError("Object {!r} is not a valid address "
                                "(tuple expected)".format(item))
        super().__init__(items)
        self.default_host = default_host
        self.default_port = default_port

    def __str__(self):
        return " ".join(str(Address(address)) for address in iter(self))

    def __repr__(self):
        return "{}({!r})".format(self.__class__.__name__, list(self))

    def resolve(self, family=0):
        """ Resolve all addresses into one or more resolved address tuples.
        Each host name will resolve into one or more IP addresses, limited by
        the given address `family` (if any). Each port value (either integer
        or string) will resolve into an integer port value (e.g. 'http' will
        resolve to 80).

            >>> a = AddressList([("localhost", "http")])
            >>> a.resolve()
            >>> a
            AddressList([('::1', 80, 0, 0), ('127.0.0.1', 80)])

        """
        resolved = []
        for address in iter(self):
            host = address[0] or self.default_host or "localhost"
            port = address[1] or self.default_port or DEFAULT_PORT
            for _, _, _, _, addr in getaddrinfo(host, port, family,
                                                SOCK_STREAM):
                if addr not in resolved:
                    resolved.append(addr)
        self[:] = resolved


class AddressParamType(ParamType):

    name = "addr"

    def __init__(self, default_host=None, default_port=None):
        self.default_host = default_host
        self.default_port = default_port

    def convert(self, value, param, ctx):
        try:
            return Address.parse(value, self.default_host, self.default_port)
        except (TypeError, ValueError) as e:
            self.fail(e.args[0], param, ctx)

    def __repr__(self):
        return 'HOST:PORT'
