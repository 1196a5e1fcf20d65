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


from boltcore.meta import package, version


DEFAULT_PORT = 7687

# The smallest buffer must hold a chunk header plus some data. The largest
# still has a data portion that fits the 16-bit size header.
MIN_CHUNK_SIZE = 8
MAX_CHUNK_SIZE = 0xFFFF + 2
DEFAULT_CHUNK_SIZE = 8192

DEFAULT_MAX_POOL_SIZE = 100
DEFAULT_CONNECTION_TIMEOUT = 5.0
DEFAULT_USER_AGENT = "{}/{}".format(package, version)

MAX_BOLT_VERSION = 3
DEFAULT_BOLT_VERSIONS = (3, 2, 1)

DEFAULTS = {
    "user_agent": DEFAULT_USER_AGENT,
    "bolt_versions": DEFAULT_BOLT_VERSIONS,
    "chunk_size": DEFAULT_CHUNK_SIZE,
    "max_pool_size": DEFAULT_MAX_POOL_SIZE,
    "connection_timeout": DEFAULT_CONNECTION_TIMEOUT,
    "connector": None,
}


def driver_config(**settings):
    """ Merge keyword settings over the defaults, checking each value.

    Raises:
        TypeError: for an unknown setting name.
        ValueError: for a setting value that is out of range.
    """
    unknown = set(settings) - set(DEFAULTS)
    if unknown:
        raise TypeError("Unknown driver settings: %s" % ", ".join(sorted(unknown)))
    config = dict(DEFAULTS, **settings)

    if not MIN_CHUNK_SIZE <= config["chunk_size"] <= MAX_CHUNK_SIZE:
        raise ValueError("Setting chunk_size must be between %d and %d" %
                         (MIN_CHUNK_SIZE, MAX_CHUNK_SIZE))
    if config["max_pool_size"] < 1:
        raise ValueError("Setting max_pool_size must be at least 1")
    if config["connection_timeout"] is not None and config["connection_timeout"] <= 0:
        raise ValueError("Setting connection_timeout must be positive")

    bolt_versions = tuple(config["bolt_versions"] or DEFAULT_BOLT_VERSIONS)
    if any(v < 1 or v > MAX_BOLT_VERSION for v in bolt_versions):
        raise ValueError("This client does not support all "
                         "Bolt versions in %r" % (bolt_versions,))
    # Exactly four proposals are sent during version negotiation
    config["bolt_versions"] = (bolt_versions + (0, 0, 0, 0))[:4]

    return config
