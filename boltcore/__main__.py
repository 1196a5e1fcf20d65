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


from logging import DEBUG
from sys import exit

import click

from boltcore.addressing import AddressParamType
from boltcore.auth import AuthParamType, Auth
from boltcore.bytetools import h, unh
from boltcore.chunking import chunked
from boltcore.config import DEFAULT_CHUNK_SIZE, MAX_CHUNK_SIZE, MIN_CHUNK_SIZE
from boltcore.driver import GraphDatabase
from boltcore.errors import BoltError
from boltcore.watcher import watch


def watch_log(ctx, param, value):
    if value:
        watch("boltcore", DEBUG, click.get_text_stream("stderr"))


@click.group()
def bolt():
    pass


@bolt.command(help="""\
Run one or more Cypher statements and print the records returned.
""")
@click.option("-a", "--auth", type=AuthParamType(), envvar="NEO4J_AUTH")
@click.option("-s", "--server-addr", type=AddressParamType(), envvar="BOLT_SERVER_ADDR",
              help="Server address in HOST:PORT format (default localhost:7687).")
@click.option("-t", "--transaction", is_flag=True,
              help="Run all statements within a single explicit transaction.")
@click.option("-x", "--keys", is_flag=True,
              help="Print the record keys as a header line for each result.")
@click.option("-v", "--verbose", count=True, callback=watch_log, expose_value=False, is_eager=True)
@click.argument("cypher", nargs=-1)
def run(cypher, server_addr, auth, transaction, keys):
    if auth is None:
        auth = Auth(click.prompt("User", default="neo4j"),
                    click.prompt("Password", hide_input=True))
    uri = "bolt://{}".format(server_addr or "localhost:7687")
    try:
        with GraphDatabase.driver(uri, auth=auth) as driver:
            with driver.session() as session:
                if transaction:
                    with session.begin_transaction() as tx:
                        results = [tx.run(statement) for statement in cypher]
                else:
                    results = [session.run(statement) for statement in cypher]
                for result in results:
                    if keys:
                        click.echo("\t".join(result.keys()))
                    for record in result:
                        click.echo("\t".join(map(str, record)))
    except BoltError as e:
        click.echo(" ".join(map(str, e.args)), err=True)
        exit(1)


@bolt.command(help="""\
Show how a message is split into chunks.

DATA is the serialised message as hex digits, optionally separated by colons
or spaces. The framed bytes are printed one chunk per line.
""")
@click.option("-c", "--chunk-size", type=click.IntRange(MIN_CHUNK_SIZE, MAX_CHUNK_SIZE),
              default=DEFAULT_CHUNK_SIZE, show_default=True,
              help="Capacity of the chunk buffer, including headers.")
@click.argument("data", nargs=-1, required=True)
def chunk(data, chunk_size):
    try:
        raw = unh("".join(data))
    except ValueError as e:
        raise click.BadParameter(e.args[0], param_hint="DATA")
    framed = chunked(raw, chunk_size)
    offset = 0
    while offset < len(framed):
        size = int.from_bytes(framed[offset:offset + 2], "big")
        click.echo(h(framed[offset:offset + 2 + size]))
        offset += 2 + size


if __name__ == "__main__":
    bolt()
