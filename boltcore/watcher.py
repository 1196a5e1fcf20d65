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
Log watching for driver and protocol activity.

Every module logs to a child of the "boltcore" logger, so watching that one
name shows everything, while watching "boltcore.chunking" shows only the raw
chunk traffic:

    >>> from boltcore.watcher import watch
    >>> watch("boltcore")

"""

from logging import CRITICAL, DEBUG, ERROR, INFO, WARNING, Formatter, StreamHandler, getLogger
from sys import stdout


def red(s):
    return "\x1b[31m{:s}\x1b[0m".format(s)


def yellow(s):
    return "\x1b[33m{:s}\x1b[0m".format(s)


def blue(s):
    return "\x1b[34m{:s}\x1b[0m".format(s)


def cyan(s):
    return "\x1b[36m{:s}\x1b[0m".format(s)


def bright_red(s):
    return "\x1b[31;1m{:s}\x1b[0m".format(s)


def bright_yellow(s):
    return "\x1b[33;1m{:s}\x1b[0m".format(s)


class ColourFormatter(Formatter):

    def format(self, record):
        s = super(ColourFormatter, self).format(record)
        if record.levelno == CRITICAL:
            return bright_red(s)
        elif record.levelno == ERROR:
            return bright_yellow(s)
        elif record.levelno == WARNING:
            return yellow(s)
        elif record.levelno == INFO:
            return cyan(s)
        elif record.levelno == DEBUG:
            return blue(s)
        else:
            return s


class Watcher:
    """ Attaches a colourised stream handler to a named logger. At most one
    handler per logger name is active; watching again replaces it.
    """

    handlers = {}

    def __init__(self, logger_name, colour=True):
        self.logger_name = logger_name
        self.logger = getLogger(self.logger_name)
        formatter_class = ColourFormatter if colour else Formatter
        self.formatter = formatter_class("%(asctime)s  %(name)-20s  %(message)s")

    def watch(self, level=INFO, out=stdout):
        self.stop()
        handler = StreamHandler(out)
        handler.setFormatter(self.formatter)
        self.handlers[self.logger_name] = handler
        self.logger.addHandler(handler)
        self.logger.setLevel(level)

    def stop(self):
        handler = self.handlers.pop(self.logger_name, None)
        if handler is not None:
            self.logger.removeHandler(handler)


def watch(logger_name, level=INFO, out=stdout, colour=True):
    """ Quick wrapper for using the Watcher.

    :param logger_name: name of logger to watch
    :param level: minimum log level to show (default INFO)
    :param out: where to send output (default stdout)
    :param colour: whether to colourise by log level (default True)
    :return: Watcher instance
    """
    watcher = Watcher(logger_name, colour)
    watcher.watch(level, out)
    return watcher
