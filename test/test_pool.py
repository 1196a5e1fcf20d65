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


from threading import Thread

from pytest import raises

from boltcore.errors import DriverError
from boltcore.pool import ConnectionPool


class FakeConnection:

    def __init__(self):
        self.closed = False
        self.defunct = False

    def close(self):
        self.closed = True


class FakeConnector:

    def __init__(self):
        self.opened = []

    def __call__(self):
        cx = FakeConnection()
        self.opened.append(cx)
        return cx


def test_acquire_opens_new_connection():
    connector = FakeConnector()
    pool = ConnectionPool(connector)
    cx = pool.acquire()
    assert connector.opened == [cx]
    assert pool.in_use == 1
    assert pool.idle == 0


def test_released_connection_is_reused():
    connector = FakeConnector()
    pool = ConnectionPool(connector)
    cx = pool.acquire()
    pool.release(cx)
    assert pool.acquire() is cx
    assert len(connector.opened) == 1


def test_defunct_connection_is_not_reused():
    connector = FakeConnector()
    pool = ConnectionPool(connector)
    cx = pool.acquire()
    cx.defunct = True
    pool.release(cx)
    assert cx.closed
    assert pool.idle == 0
    assert pool.acquire() is not cx


def test_connection_closed_while_idle_is_not_reused():
    connector = FakeConnector()
    pool = ConnectionPool(connector)
    cx = pool.acquire()
    pool.release(cx)
    cx.close()
    assert pool.acquire() is not cx


def test_exhausted_pool():
    pool = ConnectionPool(FakeConnector(), max_size=2)
    pool.acquire()
    cx = pool.acquire()
    with raises(DriverError):
        _ = pool.acquire()
    pool.release(cx)
    assert pool.acquire() is cx


def test_close_closes_idle_connections():
    pool = ConnectionPool(FakeConnector())
    idle = pool.acquire()
    busy = pool.acquire()
    pool.release(idle)
    pool.close()
    assert idle.closed
    assert not busy.closed
    pool.release(busy)
    assert busy.closed
    pool.close()


def test_closed_pool_refuses_acquire():
    pool = ConnectionPool(FakeConnector())
    pool.close()
    with raises(DriverError):
        _ = pool.acquire()


def test_concurrent_acquire_and_release():
    connector = FakeConnector()
    pool = ConnectionPool(connector, max_size=4)

    def borrow():
        for _ in range(100):
            pool.release(pool.acquire())

    threads = [Thread(target=borrow) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert pool.in_use == 0
    assert len(connector.opened) <= 4
