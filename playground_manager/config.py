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

"""Configuration classes and config models."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from playground_manager.constants import (
    CLUSTER_READY_MAX_RETRIES,
    CLUSTER_READY_POLL_INTERVAL_SECONDS,
    DEFAULT_CHARTS_BRANCH,
    DEFAULT_CHARTS_REPOSITORY,
    DEFAULT_DOWNLOAD_TIMEOUT_SECONDS,
    DEFAULT_FILES_BASE_URL,
    DEFAULT_HELM_TIMEOUT,
    DEFAULT_HTTP_TIMEOUT_SECONDS,
    DEFAULT_K3S_UNINSTALL_SCRIPT,
    DEFAULT_KUBECTL_TIMEOUT_SECONDS,
    DEFAULT_METADATA_URL,
    DEFAULT_PLAYGROUND_REPO_URL,
    DEFAULT_RELEASE_PREFIX,
    K3S_KUBECONFIG,
)

CatalogSource = Literal["cluster", "metadata"]
ChartStrategy = Literal["auto", "git", "tarball", "files"]


# ============================================================================
# Configuration classes
# ============================================================================

class ClusterConfig(BaseSettings):
    """Cluster access configuration, auto-loaded from DBEERER_* env vars.

    ``KUBECONFIG`` and ``HELM_DRIVER`` are honoured as well so the tool
    behaves like ``kubectl`` and ``helm`` in the same shell.

    Attributes:
        kubeconfig: Explicit kubeconfig path, or None to auto-detect.
        helm_driver: Helm release storage driver (secret, configmap, memory, sql).
        kubectl_timeout: Maximum seconds for a single kubectl call.
    """

    model_config = SettingsConfigDict(env_prefix="DBEERER_", extra="ignore", populate_by_name=True)

    kubeconfig: Path | None = Field(
        default=None,
        validation_alias=AliasChoices("DBEERER_KUBECONFIG", "KUBECONFIG"),
    )
    helm_driver: str | None = Field(
        default=None,
        validation_alias=AliasChoices("DBEERER_HELM_DRIVER", "HELM_DRIVER"),
    )
    kubectl_timeout: int = Field(default=DEFAULT_KUBECTL_TIMEOUT_SECONDS, ge=1)

    def resolved_kubeconfig(self) -> Path | None:
        """Return the kubeconfig to use.

        An explicit setting wins; otherwise the K3s kubeconfig is used when it
        exists, and None lets the clients fall back to ``~/.kube/config``.
        """
        if self.kubeconfig is not None:
            return self.kubeconfig
        if K3S_KUBECONFIG.exists():
            return K3S_KUBECONFIG
        return None


class ScenarioConfig(BaseSettings):
    """Scenario catalog, chart source, and Helm settings from DBEERER_* env vars.

    Attributes:
        release_prefix: Prefix for derived Helm release and namespace names.
        catalog_source: Where scenario definitions come from.
        metadata_url: URL of the remote metadata JSON document.
        chart_strategy: Chart acquisition strategy, or ``auto`` to select per scenario.
        charts_repository: ``owner/name`` of the chart-hosting GitHub repository.
        charts_branch: Branch whose tarball is downloaded.
        files_base_url: Raw file base URL for the per-file strategy.
        helm_timeout: Helm ``--timeout`` for install and uninstall.
        http_timeout: Seconds before a metadata request is abandoned.
        download_timeout: Seconds before a chart download is abandoned.
    """

    model_config = SettingsConfigDict(env_prefix="DBEERER_", extra="ignore")

    release_prefix: str = Field(default=DEFAULT_RELEASE_PREFIX, pattern=r"^[a-z0-9]([a-z0-9-]*[a-z0-9])?$")
    catalog_source: CatalogSource = "cluster"
    metadata_url: str = DEFAULT_METADATA_URL
    chart_strategy: ChartStrategy = "auto"
    charts_repository: str | None = Field(default=DEFAULT_CHARTS_REPOSITORY, pattern=r"^[\w.-]+/[\w.-]+$")
    charts_branch: str = DEFAULT_CHARTS_BRANCH
    files_base_url: str | None = DEFAULT_FILES_BASE_URL
    helm_timeout: str = Field(default=DEFAULT_HELM_TIMEOUT, pattern=r"^\d+[smh]$")
    http_timeout: int = Field(default=DEFAULT_HTTP_TIMEOUT_SECONDS, ge=1, le=300)
    download_timeout: int = Field(default=DEFAULT_DOWNLOAD_TIMEOUT_SECONDS, ge=1, le=600)


class InfraConfig(BaseSettings):
    """Infrastructure bootstrap configuration from DBEERER_* env vars.

    Attributes:
        playground_repo_url: Git URL of the repository holding the setup scripts.
        k3s_uninstall_script: Path of the uninstall script installed by K3s.
        cluster_ready_retries: Attempts while waiting for the API server.
        cluster_ready_interval: Seconds between cluster readiness attempts.
    """

    model_config = SettingsConfigDict(env_prefix="DBEERER_", extra="ignore")

    playground_repo_url: str = DEFAULT_PLAYGROUND_REPO_URL
    k3s_uninstall_script: Path = Path(DEFAULT_K3S_UNINSTALL_SCRIPT)
    cluster_ready_retries: int = Field(default=CLUSTER_READY_MAX_RETRIES, ge=1, le=120)
    cluster_ready_interval: int = Field(default=CLUSTER_READY_POLL_INTERVAL_SECONDS, ge=0, le=60)
