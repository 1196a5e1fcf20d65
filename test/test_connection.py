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


from textwrap import dedent

from pytest import raises

from boltcore.connection import Connection
from boltcore.errors import (AuthError, ClientError, ProtocolError,
                             ServiceUnavailable, TransientError)
from boltcore.stub import BoltScript, StubTransport


def stub_connection(source):
    script = BoltScript.parse(dedent(source))
    transport = StubTransport(script)
    return Connection(transport, script.version), transport


def test_init_v1():
    # Given
    cx, transport = stub_connection("""\
    !: BOLT 1
    C: INIT "boltcore/1.0.0" {"scheme": "basic", "principal": "alice", "credentials": "secret"}
    S: SUCCESS {"server": "Neo4j/3.3.0"}
    """)

    # When
    cx.init(("alice", "secret"))

    # Then
    assert cx.server_agent == "Neo4j/3.3.0"
    assert transport.complete


def test_hello_v3():
    # Given
    cx, transport = stub_connection("""\
    !: BOLT 3
    C: HELLO {"scheme": "basic", "principal": "alice", "credentials": "secret", "user_agent": "test/1"}
    S: SUCCESS {"server": "Neo4j/3.5.0", "connection_id": "bolt-1"}
    """)

    # When
    cx.init(("alice", "secret"), "test/1")

    # Then
    assert cx.server_agent == "Neo4j/3.5.0"
    assert transport.complete


def test_init_failure_closes_connection():
    cx, _ = stub_connection("""\
    !: BOLT 1
    C: INIT "boltcore/1.0.0" {"scheme": "basic", "principal": "alice", "credentials": "wrong"}
    S: FAILURE {"code": "Neo.ClientError.Security.Unauthorized", "message": "Bad credentials"}
    """)
    with raises(AuthError) as e:
        cx.init(("alice", "wrong"))
    assert e.value.code == "Neo.ClientError.Security.Unauthorized"
    assert e.value.message == "Bad credentials"
    assert cx.closed


def test_unsupported_version():
    _, transport = stub_connection("")
    with raises(ProtocolError):
        _ = Connection(transport, 4)


def test_run_and_pull_all_are_pipelined():
    # Given
    cx, transport = stub_connection("""\
    C: RUN "RETURN $x" {"x": 1}
       PULL_ALL
    S: SUCCESS {"fields": ["x"]}
       RECORD [1]
       SUCCESS {"type": "r"}
    """)

    # When
    records = []
    header = cx.run("RETURN $x", {"x": 1})
    footer = cx.pull_all(records)
    cx.sync()

    # Then
    assert header.metadata == {"fields": ["x"]}
    assert footer.metadata == {"type": "r"}
    assert records == [[1]]
    assert not cx.responses
    assert transport.complete


def test_failure_is_remembered_until_reset():
    # Given
    cx, transport = stub_connection("""\
    C: RUN "X" {}
       PULL_ALL
    S: FAILURE {"code": "Neo.ClientError.Statement.SyntaxError", "message": "Invalid input 'X'"}
       IGNORED
    C: RESET
    S: SUCCESS {}
    """)
    header = cx.run("X")
    footer = cx.pull_all([])

    # When
    with raises(ClientError) as e:
        cx.fetch_summary(header)

    # Then
    assert e.value.title == "SyntaxError"
    assert cx.failed
    cx.reset_if_failed()
    assert footer.ignored
    assert not cx.failed
    assert transport.complete


def test_reset_if_failed_does_nothing_without_failure():
    cx, transport = stub_connection("")
    cx.reset_if_failed()
    assert not cx.failed
    assert transport.complete


def test_sync_drains_all_replies_before_raising():
    cx, transport = stub_connection("""\
    C: RUN "RETURN 1" {}
       PULL_ALL
    S: FAILURE {"code": "Neo.TransientError.General.DatabaseUnavailable", "message": "Busy"}
       IGNORED
    """)
    cx.run("RETURN 1")
    cx.pull_all([])
    with raises(TransientError):
        cx.sync()
    assert not cx.responses
    assert transport.complete


def test_v1_transaction_uses_run_statements():
    cx, transport = stub_connection("""\
    !: BOLT 1
    C: RUN "BEGIN" {}
       DISCARD_ALL
    S: SUCCESS {}
       SUCCESS {}
    C: RUN "COMMIT" {}
       DISCARD_ALL
    S: SUCCESS {}
       SUCCESS {}
    """)
    cx.fetch_summary(cx.begin())
    cx.fetch_summary(cx.commit())
    assert transport.complete


def test_v3_transaction_uses_transaction_messages():
    cx, transport = stub_connection("""\
    !: BOLT 3
    C: BEGIN {"tx_timeout": 1000}
    S: SUCCESS {}
    C: ROLLBACK
    S: SUCCESS {}
    """)
    cx.fetch_summary(cx.begin({"tx_timeout": 1000}))
    cx.fetch_summary(cx.rollback())
    assert transport.complete


def test_v1_transaction_metadata_is_rejected():
    cx, _ = stub_connection("!: BOLT 1")
    with raises(ProtocolError):
        _ = cx.begin({"tx_timeout": 1000})


def test_v3_close_says_goodbye():
    cx, transport = stub_connection("""\
    !: BOLT 3
    C: GOODBYE
    """)
    cx.close()
    assert cx.closed
    assert transport.complete
    assert transport.closed


def test_close_is_idempotent():
    cx, transport = stub_connection("!: BOLT 1")
    cx.close()
    cx.close()
    assert transport.closed


def test_truncated_chunk_makes_connection_defunct():
    # Given
    cx, transport = stub_connection("""\
    C: RUN "RETURN 1" {}
    S: <RAW> 00:05:B1:70
       <EXIT>
    """)
    response = cx.run("RETURN 1")

    # When
    with raises(ProtocolError):
        cx.fetch_summary(response)

    # Then
    assert cx.defunct
    assert cx.closed
    assert transport.closed


def test_malformed_message_makes_connection_defunct():
    cx, _ = stub_connection("""\
    C: RUN "RETURN 1" {}
    S: <RAW> 00:01:FF:00:00
    """)
    response = cx.run("RETURN 1")
    with raises(ProtocolError):
        cx.fetch_summary(response)
    assert cx.defunct


def test_write_after_hang_up_is_service_unavailable():
    cx, _ = stub_connection("""\
    S: <EXIT>
    """)
    with raises(ServiceUnavailable):
        _ = cx.run("RETURN 1")
    assert cx.defunct


def test_send_on_closed_connection_is_service_unavailable():
    cx, _ = stub_connection("!: BOLT 1")
    cx.close()
    with raises(ServiceUnavailable):
        _ = cx.run("RETURN 1")


def test_receive_with_nothing_outstanding_is_a_protocol_error():
    cx, _ = stub_connection("")
    with raises(ProtocolError):
        cx.receive_message()


def test_record_for_request_without_records_is_a_protocol_error():
    cx, _ = stub_connection("""\
    !: BOLT 3
    C: BEGIN {}
    S: RECORD [1]
    """)
    response = cx.begin()
    with raises(ProtocolError):
        cx.fetch_summary(response)
    assert cx.defunct
