# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/capx/providers/base.py

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, List

from capx.config.models import ProviderParams, StorageClassRequest
from capx.nodes.interface import Node
from capx.observers.dispatcher import EventBus
from capx.observers.events import new_ctx, now_ts
from .credentials import parse_env_vars
from .errors import ProviderStateError


@dataclass(frozen=True)
class ProviderDescriptor:
    """
    Resolved provider settings handed to the cluster templates
    (clusterctl init / the aws*.tmpl manifests).
    """

    provider: str            # clusterctl infrastructure provider, e.g. "aws"
    version: str             # controller version, e.g. "v2.0.2"
    image_version: str       # controller image tag
    name: str                # short name, e.g. "capa"
    template: str            # cluster template file
    env_vars: tuple[str, ...]
    storage_class_name: str  # default StorageClass shipped with the provider
    csi_namespace: Optional[str] = None

    def env(self) -> dict[str, str]:
        return parse_env_vars(self.env_vars)


class CloudProvider(ABC):
    """
    One subclass per Cluster API infrastructure provider.

    Call order for a session: initialize() -> assemble_environment() ->
    descriptor(). Cluster-side operations (install_csi,
    configure_storage_class) run once the workload cluster exists.
    """

    def __init__(self, *, observers: Optional[List] = None, context: Optional[str] = None):
        self.bus = EventBus(observers or [])
        self.run_ctx = new_ctx(env=self.provider_name, context=context)
        self.managed: Optional[bool] = None
        self.env_vars: tuple[str, ...] = ()
        self._descriptor: Optional[ProviderDescriptor] = None

    provider_name: str = ""

    @abstractmethod
    def initialize(self, managed: bool) -> None:
        """Fix versions, template and default StorageClass for the mode. Idempotent."""

    @abstractmethod
    def assemble_environment(self, params: ProviderParams) -> tuple[str, ...]:
        """Build the ordered KEY=VALUE environment for the provider."""

    @abstractmethod
    def build_descriptor(self) -> ProviderDescriptor:
        ...

    @abstractmethod
    def install_csi(self, node: Node, kubeconfig: str) -> None:
        """Install the CSI driver in the workload cluster, if the provider needs it."""

    @abstractmethod
    def configure_storage_class(
        self, node: Node, kubeconfig: str, request: StorageClassRequest
    ) -> None:
        """Create the default StorageClass in the workload cluster."""

    def descriptor(self) -> ProviderDescriptor:
        if self.managed is None:
            raise ProviderStateError(f"{self.provider_name}: initialize() must be called first")
        if not self.env_vars:
            raise ProviderStateError(
                f"{self.provider_name}: assemble_environment() must be called before descriptor()"
            )
        if self._descriptor is None:
            self._descriptor = self.build_descriptor()
        return self._descriptor

    def _ctx(self) -> dict:
        return {**self.run_ctx, "ts": now_ts()}
