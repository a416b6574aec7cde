# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/capx/nodes/local.py

from __future__ import annotations

from typing import Mapping, Optional, Sequence

from capx.execution.runner import CommandRunner


class LocalNode:
    """Runs commands on the machine capx itself runs on."""

    def __init__(self, *, runner: CommandRunner | None = None, name: str = "localhost"):
        self.name = name
        self.runner = runner or CommandRunner(label="local")

    def run(
        self,
        argv: Sequence[str],
        *,
        env: Optional[Mapping[str, str]] = None,
        stdin_text: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> tuple[int, str, str]:
        result = self.runner.run(
            list(argv),
            stdin_text=stdin_text,
            env=dict(env) if env else None,
            timeout=timeout,
        )
        return result.returncode, result.stdout or "", result.stderr or ""

    def close(self) -> None:
        pass
