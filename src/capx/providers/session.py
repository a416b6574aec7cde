# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/capx/providers/session.py

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

import boto3
from botocore.config import Config

from capx.config.models import ProviderParams
from .credentials import static_credentials
from .errors import InsufficientCredentialsError

log = logging.getLogger("capx")


@dataclass(frozen=True)
class CloudSession:
    """
    Credentials and region for one provisioning session.

    Passed explicitly to every call that talks to AWS instead of exporting
    AWS_* into os.environ, so sessions for different clusters can coexist
    in one process.
    """

    region: str
    access_key: str
    secret_key: str = field(repr=False)
    api_timeout: float = 30.0

    @classmethod
    def from_params(cls, params: ProviderParams, *, api_timeout: float = 30.0) -> "CloudSession":
        access_key, secret_key = static_credentials(params)
        return cls(
            region=params.region,
            access_key=access_key,
            secret_key=secret_key,
            api_timeout=api_timeout,
        )

    @classmethod
    def from_env(cls, env: Mapping[str, str], *, api_timeout: float = 30.0) -> "CloudSession":
        """Build from assembled AWS_* assignments."""
        region = env.get("AWS_REGION")
        access_key = env.get("AWS_ACCESS_KEY_ID")
        secret_key = env.get("AWS_SECRET_ACCESS_KEY")
        if not (region and access_key and secret_key):
            raise InsufficientCredentialsError("Insufficient credentials.")
        return cls(
            region=region,
            access_key=access_key,
            secret_key=secret_key,
            api_timeout=api_timeout,
        )

    def client_config(self) -> Config:
        # one attempt per call; callers decide what to do on failure
        return Config(
            region_name=self.region,
            connect_timeout=self.api_timeout,
            read_timeout=self.api_timeout,
            retries={"total_max_attempts": 1, "mode": "standard"},
        )

    def client(self, service: str) -> Any:
        session = boto3.session.Session(
            aws_access_key_id=self.access_key,
            aws_secret_access_key=self.secret_key,
            region_name=self.region,
        )
        log.debug(f"[aws] {service} client for region {self.region}")
        return session.client(service, config=self.client_config())
