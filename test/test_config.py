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


from pytest import mark, raises

from boltcore.config import DEFAULT_BOLT_VERSIONS, driver_config


def test_default_config():
    config = driver_config()
    assert config["chunk_size"] == 8192
    assert config["bolt_versions"] == DEFAULT_BOLT_VERSIONS + (0,)


def test_config_pads_bolt_versions():
    assert driver_config(bolt_versions=[1])["bolt_versions"] == (1, 0, 0, 0)


@mark.parametrize("settings", [
    {"chunk_size": 7},
    {"chunk_size": 65538},
    {"max_pool_size": 0},
    {"connection_timeout": -1},
    {"bolt_versions": [4]},
])
def test_config_rejects_bad_values(settings):
    with raises(ValueError):
        _ = driver_config(**settings)


def test_config_rejects_unknown_settings():
    with raises(TypeError):
        _ = driver_config(encrypted=True)
