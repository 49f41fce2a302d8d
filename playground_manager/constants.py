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

"""Constants, dependency loading, and dep_value helper."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml


def load_dependencies() -> dict:
    """Load playground and chart repository coordinates from dependencies.yaml.

    Returns:
        Parsed YAML content as a nested dictionary.
    """
    deps_file = Path(__file__).resolve().parent / "dependencies.yaml"
    with open(deps_file) as f:
        return yaml.safe_load(f)


DEPENDENCIES = load_dependencies()


def dep_value(*keys: str, default: Any = None) -> Any:
    """Safely traverse the DEPENDENCIES dict by key path.

    Args:
        *keys: Sequence of dictionary keys to traverse.
        default: Value to return if any key is missing.

    Returns:
        The value at the nested key path, or *default* if not found.
    """
    node = DEPENDENCIES
    for key in keys:
        if not isinstance(node, dict):
            return default
        node = node.get(key)
        if node is None:
            return default
    return node


# -- Custom resources --
CRD_GROUP = "devopsbeerer.io"
CRD_VERSION = "v1alpha1"
CRD_API_VERSION = f"{CRD_GROUP}/{CRD_VERSION}"
PLURAL_SCENARIO_DEFINITIONS = "scenariodefinitions"
PLURAL_ACTIVE_SCENARIOS = "activescenarios"
KIND_ACTIVE_SCENARIO = "ActiveScenario"
ACTIVE_SCENARIO_NAME = "current-playground-scenario"

# -- Naming --
DEFAULT_RELEASE_PREFIX = "devopsbeerer"
SCENARIO_ID_PATTERN = r"^[a-z0-9]([a-z0-9-]*[a-z0-9])?$"
MAX_RELEASE_NAME_LENGTH = 53
SCENARIO_ID_VALUE_KEY = "scenario.id"
SCENARIO_DOMAIN = "devopsbeerer.local"

# -- Timeouts --
DEFAULT_HTTP_TIMEOUT_SECONDS = 10
DEFAULT_DOWNLOAD_TIMEOUT_SECONDS = 30
DEFAULT_HELM_TIMEOUT = "5m"
HELM_PROCESS_GRACE_SECONDS = 30
DEFAULT_KUBECTL_TIMEOUT_SECONDS = 30

# -- Cluster credentials --
K3S_KUBECONFIG = Path("/etc/rancher/k3s/k3s.yaml")

# -- Chart repository --
DEFAULT_CHARTS_REPOSITORY = dep_value(
    "scenario_charts", "repository", default="DevOpsBeerer/playground-scenarios-charts")
DEFAULT_CHARTS_BRANCH = dep_value("scenario_charts", "branch", default="main")
DEFAULT_METADATA_URL = dep_value("scenario_charts", "metadata_url", default="")
DEFAULT_FILES_BASE_URL = dep_value("scenario_charts", "files_base_url", default="")
CHART_REQUIRED_FILES = tuple(dep_value("scenario_charts", "required_files", default=["Chart.yaml", "values.yaml"]))
CHART_MANIFEST = "Chart.yaml"
CHART_TEMPLATES_DIR = "templates"
GITHUB_ARCHIVE_URL = "https://github.com/{repository}/archive/refs/heads/{branch}.tar.gz"
GITHUB_CONTENTS_URL = "https://api.github.com/repos/{repository}/contents/{path}"

# -- Temp dir prefixes --
CHART_TMP_PREFIX = "devopsbeerer-chart-"
INFRA_TMP_PREFIX = "devopsbeerer-infra-"

# -- Infrastructure --
DEFAULT_PLAYGROUND_REPO_URL = dep_value(
    "playground", "repo_url", default="https://github.com/DevOpsBeerer/playground.git")
PLAYGROUND_SCRIPTS = tuple(dep_value("playground", "scripts", default=["install-k3s.sh", "init-k3s.sh"]))
DEFAULT_K3S_UNINSTALL_SCRIPT = dep_value(
    "playground", "k3s_uninstall_script", default="/usr/local/bin/k3s-uninstall.sh")
INFRA_COMPONENTS = dep_value("infrastructure", "components", default=[])
CLUSTER_READY_MAX_RETRIES = 30
CLUSTER_READY_POLL_INTERVAL_SECONDS = 5
