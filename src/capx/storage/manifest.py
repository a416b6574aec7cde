# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/capx/storage/manifest.py

from __future__ import annotations

import copy
import re
import logging
from typing import Any, Dict

import yaml

from capx.config.models import SCParameters
from capx.execution.runner import CommandError
from capx.nodes.interface import Node
from capx.providers.errors import StorageClassError

log = logging.getLogger("capx")

GENERIC_FSTYPE_KEY = "fsType"

# manifest key -> SCParameters field
_PARAMETER_KEYS = (
    ("type", "type"),
    ("fsType", "fs_type"),
    ("encrypted", "encrypted"),
    ("kmsKeyId", "kms_key_id"),
)


def storage_class_template(*, name: str, provisioner: str, default: bool = True) -> Dict[str, Any]:
    annotations = {}
    if default:
        annotations["storageclass.kubernetes.io/is-default-class"] = "true"
    return {
        "apiVersion": "storage.k8s.io/v1",
        "kind": "StorageClass",
        "metadata": {
            "annotations": annotations,
            "name": name,
        },
        "provisioner": provisioner,
        "parameters": {},
        "volumeBindingMode": "WaitForFirstConsumer",
    }


def manifest_parameters(params: SCParameters) -> Dict[str, str]:
    """StorageClass parameters are a map of strings in Kubernetes."""
    out: Dict[str, str] = {}
    for key, field in _PARAMETER_KEYS:
        value = getattr(params, field)
        if value is None or value == "":
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        out[key] = str(value)
    return out


def insert_parameters(template: Dict[str, Any], params: SCParameters) -> Dict[str, Any]:
    """Overlay resolved parameters onto a copy of the template."""
    manifest = copy.deepcopy(template)
    parameters = dict(manifest.get("parameters") or {})
    parameters.update(manifest_parameters(params))
    manifest["parameters"] = parameters
    return manifest


def rewrite_fstype_key(text: str, fstype_key: str) -> str:
    """
    Rename the generic ``fsType`` parameter to the provider's namespaced key
    (e.g. ``csi.storage.k8s.io/fstype``), which the structured parameter set
    cannot carry.
    """
    pattern = re.compile(rf"^(\s+){re.escape(GENERIC_FSTYPE_KEY)}:", re.MULTILINE)
    return pattern.sub(lambda m: f"{m.group(1)}{fstype_key}:", text)


def render_storage_class(
    template: Dict[str, Any],
    params: SCParameters,
    *,
    fstype_key: str,
) -> str:
    manifest = insert_parameters(template, params)
    try:
        text = yaml.safe_dump(manifest, sort_keys=False)
    except yaml.YAMLError as e:
        raise StorageClassError(f"failed to render StorageClass: {e}") from e
    return rewrite_fstype_key(text, fstype_key)


def apply_manifest(
    node: Node,
    kubeconfig: str,
    manifest: str,
    *,
    timeout: float | None = None,
) -> str:
    """kubectl apply the manifest from stdin on *node*; returns kubectl output."""
    argv = ["kubectl", "--kubeconfig", kubeconfig, "apply", "-f", "-"]
    try:
        rc, out, err = node.run(argv, stdin_text=manifest, timeout=timeout)
    except CommandError as e:
        raise StorageClassError(f"failed to create StorageClass: {e}") from e
    if rc != 0:
        raise StorageClassError(
            f"failed to create StorageClass: {(err or out).strip()}"
        )
    log.debug(f"[storage] {out.strip()}")
    return out
