# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/capx/storage/parameters.py

from __future__ import annotations

import logging
from typing import Mapping

from capx.config.models import SCParameters, StorageClassRequest

log = logging.getLogger("capx")

STANDARD = "standard"
PREMIUM = "premium"


def _present(value) -> bool:
    return value is not None and value != ""


def merge_parameters(overrides: SCParameters, defaults: SCParameters) -> SCParameters:
    """
    Fields set on *overrides* win; unset (None / "") fields keep the default.
    ``encrypted=False`` is a real value and does override.
    """
    merged = defaults.model_dump()
    for key, value in overrides.model_dump().items():
        if _present(value):
            merged[key] = value
    return SCParameters(**merged)


def resolve_parameters(
    request: StorageClassRequest,
    tiers: Mapping[str, SCParameters],
    *,
    fallback: str = STANDARD,
) -> SCParameters:
    """
    Resolve the concrete StorageClass parameters for a request.

    1. A KMS key on the request forces ``encrypted=True`` and ``kmsKeyId``.
    2. The tier picks the default parameter set.
    3. Caller overrides replace tier defaults field by field.

    An unknown tier falls back to the *fallback* tier defaults and ignores the
    caller overrides entirely; only the KMS encryption is still applied.
    """
    overrides = request.parameters
    encryption = {}
    if request.encryption_kms_key:
        encryption = {"encrypted": True, "kms_key_id": request.encryption_kms_key}
        overrides = overrides.model_copy(update=encryption)

    defaults = tiers.get(request.class_)
    if defaults is None:
        log.warning(
            f"[storage] unknown storage class tier {request.class_!r}, "
            f"using {fallback} defaults without overrides"
        )
        return tiers[fallback].model_copy(update=encryption)

    return merge_parameters(overrides, defaults)
