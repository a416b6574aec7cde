# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/capx/observers/interface.py
from __future__ import annotations
from typing import Protocol
from .events import BaseEvent


class Observer(Protocol):
    """Receives every provider event; must not raise into provisioning."""

    def notify(self, event: BaseEvent) -> None: ...
