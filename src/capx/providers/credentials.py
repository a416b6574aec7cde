# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/capx/providers/credentials.py

from __future__ import annotations

import base64
import logging
from typing import Iterable

from capx.config.models import ProviderParams
from .errors import InsufficientCredentialsError

log = logging.getLogger("capx")

ACCESS_KEY = "AccessKey"
SECRET_KEY = "SecretKey"


def aws_credentials_ini(access_key: str, secret_key: str, region: str) -> str:
    """
    Shared-credentials text consumed by clusterawsadm / CAPA
    (AWS_B64ENCODED_CREDENTIALS). The layout must stay byte-for-byte stable.
    """
    return (
        "[default]\n"
        f"aws_access_key_id = {access_key}\n"
        f"aws_secret_access_key = {secret_key}\n"
        f"region = {region}\n"
    )


def encode_credentials(access_key: str, secret_key: str, region: str) -> str:
    text = aws_credentials_ini(access_key, secret_key, region)
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def static_credentials(params: ProviderParams) -> tuple[str, str]:
    access_key = params.credentials.get(ACCESS_KEY)
    secret_key = params.credentials.get(SECRET_KEY)
    missing = [k for k, v in ((ACCESS_KEY, access_key), (SECRET_KEY, secret_key)) if not v]
    if missing:
        raise InsufficientCredentialsError(
            f"Missing AWS credentials: {', '.join(missing)}"
        )
    return access_key, secret_key


def build_aws_env_vars(params: ProviderParams) -> tuple[str, ...]:
    """
    Ordered KEY=VALUE assignments for CAPA and clusterawsadm.
    """
    access_key, secret_key = static_credentials(params)
    env_vars = (
        f"AWS_REGION={params.region}",
        f"AWS_ACCESS_KEY_ID={access_key}",
        f"AWS_SECRET_ACCESS_KEY={secret_key}",
        f"AWS_B64ENCODED_CREDENTIALS={encode_credentials(access_key, secret_key, params.region)}",
        f"GITHUB_TOKEN={params.github_token or ''}",
        "CAPA_EKS_IAM=true",
    )
    log.debug(f"[aws] assembled env: {', '.join(env_keys(env_vars))}")
    return env_vars


def parse_env_vars(env_vars: Iterable[str]) -> dict[str, str]:
    """Split KEY=VALUE on the first '=' only; base64 values keep their padding."""
    env: dict[str, str] = {}
    for assignment in env_vars:
        key, sep, value = assignment.partition("=")
        if not sep:
            raise ValueError(f"Malformed environment assignment for key {key!r}")
        env[key] = value
    return env


def env_keys(env_vars: Iterable[str]) -> list[str]:
    return [a.partition("=")[0] for a in env_vars]
