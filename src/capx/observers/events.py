# src/capx/observers/events.py

from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import List, Dict, Any, Optional
from datetime import datetime, timezone
import uuid


# ---------------------------------------------------------------------
# Base context and helper
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class BaseEvent:
    ts: str           # ISO timestamp
    run_id: str       # correlates all events of one provider session
    env: str          # provider name
    context: Optional[str]  # kubeconfig / node

    def dict(self) -> Dict[str, Any]:
        return asdict(self)


def now_ts() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


def new_ctx(env: str, context: Optional[str]) -> Dict[str, Any]:
    return {
        "ts": now_ts(),
        "run_id": str(uuid.uuid4()),
        "env": env,
        "context": context,
    }


# ---------------------------------------------------------------------
# Provider setup
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class ProviderInitialized(BaseEvent):
    provider: str
    managed: bool
    template: str

@dataclass(frozen=True)
class EnvironmentAssembled(BaseEvent):
    keys: List[str]   # never the values


# ---------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class StorageClassApplied(BaseEvent):
    name: str
    tier: str
    output: str

@dataclass(frozen=True)
class StorageClassFailed(BaseEvent):
    name: str
    error: str


# ---------------------------------------------------------------------
# Cloud queries
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class AvailabilityZonesResolved(BaseEvent):
    region: str
    zones: List[str]

@dataclass(frozen=True)
class RegistryTokenIssued(BaseEvent):
    region: str


# ---------------------------------------------------------------------
# IAM bootstrap
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class IAMBootstrapStarted(BaseEvent):
    config_path: str

@dataclass(frozen=True)
class IAMBootstrapSucceeded(BaseEvent):
    output: str

@dataclass(frozen=True)
class IAMBootstrapFailed(BaseEvent):
    stage: str
    error: str
