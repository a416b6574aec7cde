# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/capx/providers/errors.py
class ProviderError(RuntimeError):
    """Base class for cloud provider failures."""


class ProviderStateError(ProviderError):
    """Raised when provider operations are called out of order."""


class UnsupportedProviderError(ProviderError):
    """Raised when no provider is registered for a backend name."""


class InsufficientCredentialsError(ProviderError):
    """Raised when credentials are missing for an operation that needs them."""


class InsufficientAvailabilityZonesError(ProviderError):
    """Raised when the region reports fewer zones than required."""


class CloudAPIError(ProviderError):
    """Raised when a cloud SDK call fails."""


class RegistryTokenError(ProviderError):
    """Raised when a registry authorization token cannot be decoded."""


class StorageClassError(ProviderError):
    """Raised when a StorageClass cannot be rendered or applied."""


class IAMBootstrapError(ProviderError):
    """Raised when the IAM bootstrap config cannot be written or applied."""


class NodeConnectionError(ProviderError):
    """Raised when the node that runs cluster commands cannot be reached."""
