# /*
# Copyright 2026 The DevOpsBeerer Authors.
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
# */

from __future__ import annotations

import logging

import pytest
import requests
from kubernetes.client.exceptions import ApiException

from conftest import FakeCustomObjectsApi, FakeCoreV1Api, FakeResponse, FakeSession, StaticSource
from playground_manager.catalog import ClusterSource, MetadataSource, ScenarioCatalog
from playground_manager.errors import CatalogError, ScenarioNotFound
from playground_manager.kube import KubeClient

METADATA_URL = "https://example.com/metadata.json"


def test_malformed_records_are_skipped(caplog):
    catalog = ScenarioCatalog(StaticSource([
        {"id": "alpha", "name": "Alpha"},
        {"name": "No id"},
        {"id": "beta", "name": "Beta"},
    ]))
    with caplog.at_level(logging.WARNING, logger="playground_manager"):
        scenarios = catalog.list()
    assert [s.id for s in scenarios] == ["alpha", "beta"]
    assert "entry #1" in caplog.text


def test_wrong_types_and_invalid_ids_are_skipped():
    catalog = ScenarioCatalog(StaticSource([
        "not an object",
        {"id": "Bad_Id"},
        {"id": "gamma", "tags": "should-be-a-list"},
        {"id": "delta"},
    ]))
    assert [s.id for s in catalog.list()] == ["delta"]


def test_duplicate_ids_keep_first():
    catalog = ScenarioCatalog(StaticSource([
        {"id": "alpha", "name": "First"},
        {"id": "alpha", "name": "Second"},
    ]))
    scenarios = catalog.list()
    assert len(scenarios) == 1
    assert scenarios[0].name == "First"


def test_get_unknown_scenario(catalog):
    assert catalog.get("beta").name == "Beta"
    with pytest.raises(ScenarioNotFound, match="missing"):
        catalog.get("missing")


def test_metadata_source_reads_json_array():
    session = FakeSession({METADATA_URL: FakeResponse(payload=[{"id": "alpha"}, {"id": "beta"}])})
    catalog = ScenarioCatalog(MetadataSource(METADATA_URL, session, timeout=10))
    assert [s.id for s in catalog.list()] == ["alpha", "beta"]
    assert session.requests[0][1]["timeout"] == 10


def test_metadata_source_rejects_non_list():
    session = FakeSession({METADATA_URL: FakeResponse(payload={"id": "alpha"})})
    with pytest.raises(CatalogError, match="not a list"):
        MetadataSource(METADATA_URL, session, timeout=10).fetch()


def test_metadata_source_wraps_http_errors():
    session = FakeSession({METADATA_URL: FakeResponse(500)})
    with pytest.raises(CatalogError, match="Failed to fetch"):
        MetadataSource(METADATA_URL, session, timeout=10).fetch()

    session = FakeSession({METADATA_URL: requests.ConnectionError("offline")})
    with pytest.raises(CatalogError, match="offline"):
        MetadataSource(METADATA_URL, session, timeout=10).fetch()


def test_metadata_source_rejects_invalid_json():
    session = FakeSession({METADATA_URL: FakeResponse(content=b"<html>")})
    with pytest.raises(CatalogError, match="not valid JSON"):
        MetadataSource(METADATA_URL, session, timeout=10).fetch()


def test_cluster_source_reads_definition_specs():
    custom_api = FakeCustomObjectsApi(definitions=[
        {"metadata": {"name": "alpha"}, "spec": {"id": "alpha", "name": "Alpha"}},
        {"metadata": {"name": "broken"}},
    ])
    catalog = ScenarioCatalog(ClusterSource(KubeClient(custom_api, FakeCoreV1Api())))
    assert [s.id for s in catalog.list()] == ["alpha"]


def test_cluster_source_wraps_api_errors():
    class FailingApi(FakeCustomObjectsApi):
        def list_cluster_custom_object(self, group, version, plural):
            raise ApiException(status=403, reason="Forbidden")

    source = ClusterSource(KubeClient(FailingApi(), FakeCoreV1Api()))
    with pytest.raises(CatalogError, match="403"):
        source.fetch()
