# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/capx/providers/registry.py

from __future__ import annotations

from typing import Dict, Type

from .aws import AWSProvider
from .base import CloudProvider
from .errors import UnsupportedProviderError

PROVIDERS: Dict[str, Type[CloudProvider]] = {
    "aws": AWSProvider,
}


def get_provider(name: str, **kwargs) -> CloudProvider:
    """Fresh provider instance for one provisioning session."""
    try:
        cls = PROVIDERS[name]
    except KeyError:
        raise UnsupportedProviderError(
            f"Unsupported provider {name!r} (available: {', '.join(sorted(PROVIDERS))})"
        ) from None
    return cls(**kwargs)
