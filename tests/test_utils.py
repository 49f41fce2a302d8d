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

from pathlib import Path

import pytest
import sh

from playground_manager.errors import InvalidScenarioId, ScenarioNotFound
from playground_manager.utils import (
    error_output,
    kube_args,
    parse_set_values,
    release_name,
    scenario_namespace,
    validate_scenario_id,
)


def test_naming_is_deterministic():
    assert release_name("oauth2-basics") == "devopsbeerer-oauth2-basics"
    assert scenario_namespace("oauth2-basics") == "devopsbeerer-oauth2-basics"
    assert release_name("x", prefix="lab") == release_name("x", prefix="lab") == "lab-x"


@pytest.mark.parametrize("scenario_id", ["Upper", "under_score", "-leading", "trailing-", "a.b", ""])
def test_validate_rejects_invalid_ids(scenario_id):
    with pytest.raises(InvalidScenarioId):
        validate_scenario_id(scenario_id)


def test_validate_rejects_ids_producing_long_release_names():
    with pytest.raises(InvalidScenarioId, match="53"):
        validate_scenario_id("a" * 50)


def test_invalid_id_is_a_not_found_error():
    with pytest.raises(ScenarioNotFound):
        validate_scenario_id("Nope")


def test_validate_accepts_valid_id():
    assert validate_scenario_id("oidc-2") == "oidc-2"


def test_parse_set_values_keeps_order_and_last_wins():
    values = parse_set_values(["a.b=1", "c=x=y", "a.b=2", "empty="])
    assert values == {"a.b": "2", "c": "x=y", "empty": ""}


@pytest.mark.parametrize("item", ["novalue", "=1", "  =1"])
def test_parse_set_values_rejects_malformed(item):
    with pytest.raises(ValueError, match="key=value"):
        parse_set_values([item])


def test_kube_args():
    assert kube_args(None) == []
    assert kube_args(Path("/tmp/kc")) == ["--kubeconfig", "/tmp/kc"]


def test_error_output_prefers_stderr():
    err = sh.ErrorReturnCode_1("helm status x", b"some stdout", b"Error: release: not found")
    assert error_output(err) == "Error: release: not found"

    err = sh.ErrorReturnCode_1("helm status x", b"only stdout", b"")
    assert error_output(err) == "only stdout"
