# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/capx/nodes/container.py

from __future__ import annotations

from typing import Mapping, Optional, Sequence

from capx.execution.runner import CommandRunner


class ContainerNode:
    """
    A container reached through ``docker exec``, e.g. the kind control-plane
    container that hosts the local management cluster.

    Environment values are handed to the docker client through its own
    environment and forwarded with ``-e KEY``, so secrets never show up in
    argv or in logs.
    """

    def __init__(
        self,
        container: str,
        *,
        runner: CommandRunner | None = None,
        engine: str = "docker",
    ):
        self.name = container
        self.container = container
        self.engine = engine
        self.runner = runner or CommandRunner(label=f"exec:{container}")

    def _exec_argv(self, argv: Sequence[str], env: Optional[Mapping[str, str]]) -> list[str]:
        cmd = [self.engine, "exec", "-i"]
        for key in env or {}:
            cmd += ["-e", key]
        cmd.append(self.container)
        cmd += list(argv)
        return cmd

    def run(
        self,
        argv: Sequence[str],
        *,
        env: Optional[Mapping[str, str]] = None,
        stdin_text: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> tuple[int, str, str]:
        result = self.runner.run(
            self._exec_argv(argv, env),
            stdin_text=stdin_text,
            env=dict(env) if env else None,
            timeout=timeout,
        )
        return result.returncode, result.stdout or "", result.stderr or ""

    def close(self) -> None:
        pass
