# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/capx/providers/aws.py

from __future__ import annotations

import base64
import binascii
import logging
from pathlib import Path
from typing import List, Optional, Sequence

from botocore.exceptions import BotoCoreError, ClientError
from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateError

from capx.config.models import ProviderParams, SCParameters, StorageClassRequest
from capx.execution.runner import CommandError
from capx.nodes.interface import Node
from capx.observers.events import (
    AvailabilityZonesResolved,
    EnvironmentAssembled,
    IAMBootstrapFailed,
    IAMBootstrapStarted,
    IAMBootstrapSucceeded,
    ProviderInitialized,
    RegistryTokenIssued,
    StorageClassApplied,
    StorageClassFailed,
)
from capx.storage.manifest import apply_manifest, render_storage_class, storage_class_template
from capx.storage.parameters import PREMIUM, STANDARD, resolve_parameters
from .base import CloudProvider, ProviderDescriptor
from .credentials import build_aws_env_vars, env_keys, parse_env_vars
from .errors import (
    CloudAPIError,
    IAMBootstrapError,
    InsufficientAvailabilityZonesError,
    InsufficientCredentialsError,
    ProviderStateError,
    RegistryTokenError,
    StorageClassError,
)
from .session import CloudSession

log = logging.getLogger("capx")

ASSETS_DIR = Path(__file__).resolve().parent.parent / "assets" / "aws"

CAPA_VERSION = "v2.0.2"
CAPA_IMAGE_VERSION = "2.0.2-0.1.0"
EKS_TEMPLATE = "aws.eks.tmpl"
SELF_MANAGED_TEMPLATE = "aws.tmpl"
DEFAULT_STORAGE_CLASS = "gp2"

EBS_PROVISIONER = "ebs.csi.aws.com"
EBS_FSTYPE_KEY = "csi.storage.k8s.io/fstype"
EBS_CSI_POLICY_ARN = "arn:aws:iam::aws:policy/service-role/AmazonEBSCSIDriverPolicy"

EKS_CONFIG_PATH = "/kind/eks.config"
MIN_AVAILABILITY_ZONES = 3

AWS_STORAGE_TIERS = {
    STANDARD: SCParameters(type="gp2"),
    PREMIUM: SCParameters(type="gp3"),
}

storage_class_aws_template = storage_class_template(name="keos", provisioner=EBS_PROVISIONER)


# ---------------------------------------------------------------------------
# IAM bootstrap (managed / EKS clusters)
# ---------------------------------------------------------------------------

def render_eks_config(
    *,
    node_policies: Sequence[str] = (EBS_CSI_POLICY_ARN,),
    templates_dir: Path = ASSETS_DIR,
) -> str:
    """Render the AWSIAMConfiguration consumed by clusterawsadm."""
    env = Environment(
        loader=FileSystemLoader(str(templates_dir)),
        undefined=StrictUndefined,
        autoescape=False,
        keep_trailing_newline=True,
    )
    try:
        tmpl = env.get_template("eks.config.j2")
        return tmpl.render(
            bootstrap_user=True,
            eks=True,
            csi_policy=True,
            node_policies=list(node_policies),
        )
    except TemplateError as e:
        raise IAMBootstrapError(f"failed to render eks.config: {e}") from e


def create_cloudformation_stack(
    node: Node,
    env_vars: Sequence[str],
    *,
    config_path: str = EKS_CONFIG_PATH,
    timeout: float | None = None,
) -> str:
    """
    Write eks.config on the node and run clusterawsadm with it, which creates
    or updates the CloudFormation stack holding the CAPA IAM roles.
    """
    eks_config = render_eks_config()

    try:
        rc, out, err = node.run(
            ["sh", "-c", f"cat > {config_path}"],
            stdin_text=eks_config,
            timeout=timeout,
        )
    except CommandError as e:
        raise IAMBootstrapError(f"failed to create eks.config: {e}") from e
    if rc != 0:
        raise IAMBootstrapError(f"failed to create eks.config: {(err or out).strip()}")

    try:
        rc, out, err = node.run(
            ["clusterawsadm", "bootstrap", "iam", "create-cloudformation-stack", "--config", config_path],
            env=parse_env_vars(env_vars),
            timeout=timeout,
        )
    except CommandError as e:
        raise IAMBootstrapError(f"failed to run clusterawsadm: {e}") from e
    if rc != 0:
        raise IAMBootstrapError(f"failed to run clusterawsadm: {(err or out).strip()}")

    return out


# ---------------------------------------------------------------------------
# ECR
# ---------------------------------------------------------------------------

def decode_ecr_token(token: str) -> str:
    """ECR tokens are base64("AWS:<password>"); return the password only."""
    try:
        data = base64.b64decode(token, validate=True).decode("utf-8")
    except (binascii.Error, ValueError) as e:
        raise RegistryTokenError(f"malformed ECR authorization token: {e}") from e
    _, sep, password = data.partition(":")
    if not sep:
        raise RegistryTokenError("malformed ECR authorization token: missing ':' separator")
    return password


def get_ecr_token(params: ProviderParams, *, api_timeout: float = 30.0) -> str:
    session = CloudSession.from_params(params, api_timeout=api_timeout)
    try:
        resp = session.client("ecr").get_authorization_token()
    except (BotoCoreError, ClientError) as e:
        raise CloudAPIError(f"failed to get ECR authorization token: {e}") from e

    auth_data = resp.get("authorizationData") or []
    if not auth_data or not auth_data[0].get("authorizationToken"):
        raise RegistryTokenError("ECR returned no authorization data")
    return decode_ecr_token(auth_data[0]["authorizationToken"])


# ---------------------------------------------------------------------------
# Provider
# ---------------------------------------------------------------------------

class AWSProvider(CloudProvider):
    """Cluster API Provider AWS (CAPA), for EKS and self-managed clusters."""

    provider_name = "aws"

    def __init__(
        self,
        *,
        observers: Optional[List] = None,
        context: Optional[str] = None,
        api_timeout: float = 30.0,
        command_timeout: float | None = 300.0,
    ):
        super().__init__(observers=observers, context=context)
        self.api_timeout = api_timeout
        self.command_timeout = command_timeout
        self.template: str = ""
        self.storage_class_name: str = ""
        self.csi_namespace: Optional[str] = None
        self.params: Optional[ProviderParams] = None

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def initialize(self, managed: bool) -> None:
        self.managed = managed
        self.storage_class_name = DEFAULT_STORAGE_CLASS
        self.template = EKS_TEMPLATE if managed else SELF_MANAGED_TEMPLATE
        self.csi_namespace = None
        self._descriptor = None

        log.debug(f"[aws] mode={'managed' if managed else 'self-managed'} template={self.template}")
        self.bus.emit(
            ProviderInitialized(
                provider=self.provider_name,
                managed=managed,
                template=self.template,
                **self._ctx(),
            )
        )

    def assemble_environment(self, params: ProviderParams) -> tuple[str, ...]:
        self.env_vars = build_aws_env_vars(params)
        self.params = params
        self._descriptor = None
        self.bus.emit(EnvironmentAssembled(keys=env_keys(self.env_vars), **self._ctx()))
        return self.env_vars

    def build_descriptor(self) -> ProviderDescriptor:
        return ProviderDescriptor(
            provider=self.provider_name,
            version=CAPA_VERSION,
            image_version=CAPA_IMAGE_VERSION,
            name="capa",
            template=self.template,
            env_vars=self.env_vars,
            storage_class_name=self.storage_class_name,
            csi_namespace=self.csi_namespace,
        )

    # ------------------------------------------------------------------
    # Workload cluster
    # ------------------------------------------------------------------

    def install_csi(self, node: Node, kubeconfig: str) -> None:
        # The EBS CSI driver ships with the CAPA node images / EKS add-on.
        log.debug("[aws] EBS CSI driver is preinstalled, nothing to do")

    def storage_class_manifest(self, request: StorageClassRequest) -> str:
        params = resolve_parameters(request, AWS_STORAGE_TIERS)
        return render_storage_class(
            storage_class_aws_template,
            params,
            fstype_key=EBS_FSTYPE_KEY,
        )

    def configure_storage_class(
        self, node: Node, kubeconfig: str, request: StorageClassRequest
    ) -> None:
        name = storage_class_aws_template["metadata"]["name"]
        try:
            manifest = self.storage_class_manifest(request)
            out = apply_manifest(node, kubeconfig, manifest, timeout=self.command_timeout)
        except StorageClassError as e:
            self.bus.emit(StorageClassFailed(name=name, error=str(e), **self._ctx()))
            raise

        log.info(f"[aws] StorageClass {name} ({request.class_}) applied")
        self.bus.emit(
            StorageClassApplied(
                name=name,
                tier=request.class_,
                output=out.strip(),
                **self._ctx(),
            )
        )

    # ------------------------------------------------------------------
    # Cloud queries
    # ------------------------------------------------------------------

    def session(self) -> CloudSession:
        if not self.env_vars:
            raise InsufficientCredentialsError("Insufficient credentials.")
        return CloudSession.from_env(parse_env_vars(self.env_vars), api_timeout=self.api_timeout)

    def get_azs(self) -> list[str]:
        """First three availability zones of the region, in the order EC2 reports them."""
        session = self.session()
        try:
            result = session.client("ec2").describe_availability_zones()
        except (BotoCoreError, ClientError) as e:
            raise CloudAPIError(f"failed to describe availability zones: {e}") from e

        zones = result.get("AvailabilityZones") or []
        if len(zones) < MIN_AVAILABILITY_ZONES:
            raise InsufficientAvailabilityZonesError(
                f"Insufficient Availability Zones in region {session.region}. "
                f"Must have at least {MIN_AVAILABILITY_ZONES}"
            )

        azs = [az["ZoneName"] for az in zones[:MIN_AVAILABILITY_ZONES]]
        log.debug(f"[aws] availability zones: {azs}")
        self.bus.emit(AvailabilityZonesResolved(region=session.region, zones=azs, **self._ctx()))
        return azs

    def get_registry_token(self) -> str:
        if self.params is None:
            raise InsufficientCredentialsError("Insufficient credentials.")
        password = get_ecr_token(self.params, api_timeout=self.api_timeout)
        self.bus.emit(RegistryTokenIssued(region=self.params.region, **self._ctx()))
        return password

    def bootstrap_iam(self, node: Node) -> None:
        if not self.managed:
            raise ProviderStateError("IAM bootstrap is only needed for managed (EKS) clusters")
        if not self.env_vars:
            raise InsufficientCredentialsError("Insufficient credentials.")

        self.bus.emit(IAMBootstrapStarted(config_path=EKS_CONFIG_PATH, **self._ctx()))
        try:
            out = create_cloudformation_stack(node, self.env_vars, timeout=self.command_timeout)
        except IAMBootstrapError as e:
            self.bus.emit(IAMBootstrapFailed(stage="iam-bootstrap", error=str(e), **self._ctx()))
            raise
        log.info("[aws] CloudFormation IAM stack is up to date")
        self.bus.emit(IAMBootstrapSucceeded(output=out.strip(), **self._ctx()))
