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


from io import StringIO
from logging import DEBUG, getLogger

from boltcore.watcher import watch


def test_watch_shows_debug_messages():
    out = StringIO()
    watcher = watch("boltcore.test", DEBUG, out, colour=False)
    try:
        getLogger("boltcore.test").debug("C: RESET")
    finally:
        watcher.stop()
    assert "C: RESET" in out.getvalue()


def test_watch_colours_by_level():
    out = StringIO()
    watcher = watch("boltcore.test", DEBUG, out)
    try:
        getLogger("boltcore.test").debug("S: SUCCESS {}")
    finally:
        watcher.stop()
    assert out.getvalue().startswith("\x1b[34m")


def test_stopped_watcher_shows_nothing():
    out = StringIO()
    watch("boltcore.test", DEBUG, out, colour=False).stop()
    getLogger("boltcore.test").debug("C: RESET")
    assert out.getvalue() == ""
