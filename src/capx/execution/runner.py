# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/capx/execution/runner.py
from __future__ import annotations

import os
import subprocess
import time
import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Union

Cmd = Sequence[Union[str, "os.PathLike[str]"]]

log = logging.getLogger("capx")


class CommandError(RuntimeError):
    """A command exited non-zero."""

    def __init__(self, cmd: str, returncode: int, stdout: str = "", stderr: str = ""):
        self.cmd = cmd
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        detail = (stderr or stdout or "").strip()
        super().__init__(f"command failed (exit {returncode}): {cmd}: {detail}")


class CommandTimeoutError(CommandError):
    """A command did not finish within its timeout."""

    def __init__(self, cmd: str, timeout: float):
        self.timeout = timeout
        super().__init__(cmd, -1, stderr=f"timed out after {timeout}s")


@dataclass
class CommandRunner:
    dry_run: bool = False
    label: Optional[str] = None
    timeout: Optional[float] = None

    def run(
        self,
        cmd: Cmd,
        *,
        stdin_text: str | None = None,
        check: bool = False,
        cwd: str | None = None,
        env: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> subprocess.CompletedProcess:
        """
        Run a command and capture its output.

        ``env`` is layered on top of the current process environment for the
        child only; its values are never logged.
        """
        label = self.label or "cmd"
        cmd_str = " ".join(map(str, cmd))
        timeout = timeout if timeout is not None else self.timeout

        log.debug(f"[{label}] $ {cmd_str}")
        if env:
            log.debug(f"[{label}] env keys: {', '.join(sorted(env))}")

        if self.dry_run:
            log.debug(f"[{label}] dry-run: skipped execution")
            return subprocess.CompletedProcess(
                args=list(cmd),
                returncode=0,
                stdout="",
                stderr="",
            )

        child_env = None
        if env:
            child_env = dict(os.environ)
            child_env.update(env)

        start = time.time()
        try:
            result = subprocess.run(
                [str(c) for c in cmd],
                input=stdin_text,
                capture_output=True,
                text=True,
                cwd=cwd,
                env=child_env,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired as e:
            log.debug(f"[{label}][timeout {timeout}s]")
            raise CommandTimeoutError(cmd_str, timeout) from e
        except OSError as e:
            # e.g. executable not on PATH
            log.debug(f"[{label}][oserror] {e}")
            raise CommandError(cmd_str, 127, stderr=str(e)) from e

        duration = time.time() - start

        if result.stdout:
            log.debug(f"[{label}][stdout]\n{result.stdout.rstrip()}")
        if result.stderr:
            log.debug(f"[{label}][stderr]\n{result.stderr.rstrip()}")
        log.debug(f"[{label}][exit {result.returncode}] ({duration:.2f}s)")

        if check and result.returncode != 0:
            raise CommandError(cmd_str, result.returncode, result.stdout, result.stderr)

        return result
