# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/capx/nodes/ssh.py

from __future__ import annotations

import shlex
import socket
import logging
from typing import Mapping, Optional, Sequence

import paramiko

from capx.execution.runner import CommandError, CommandTimeoutError
from capx.providers.errors import NodeConnectionError

log = logging.getLogger("capx")


class SSHNode:
    """
    A management host reached over SSH (paramiko).
    """

    def __init__(self, client: paramiko.SSHClient, *, name: str):
        self.client = client
        self.name = name

    def run(
        self,
        argv: Sequence[str],
        *,
        env: Optional[Mapping[str, str]] = None,
        stdin_text: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> tuple[int, str, str]:
        cmd = shlex.join(list(argv))
        log.debug(f"[ssh:{self.name}] $ {cmd}")
        if env:
            log.debug(f"[ssh:{self.name}] env keys: {', '.join(sorted(env))}")
            # AcceptEnv is rarely configured server side, so pass env inline
            prefix = " ".join(f"{k}={shlex.quote(v)}" for k, v in env.items())
            cmd = f"env {prefix} {cmd}"

        try:
            stdin, stdout, stderr = self.client.exec_command(cmd, timeout=timeout)
            if stdin_text is not None:
                stdin.write(stdin_text)
                stdin.flush()
                stdin.channel.shutdown_write()
            out = stdout.read().decode()
            err = stderr.read().decode()
            rc = stdout.channel.recv_exit_status()
        except socket.timeout as e:
            raise CommandTimeoutError(shlex.join(list(argv)), timeout) from e
        except (paramiko.SSHException, OSError) as e:
            raise CommandError(shlex.join(list(argv)), 127, stderr=str(e)) from e

        log.debug(f"[ssh:{self.name}][exit {rc}]")
        return rc, out, err

    def close(self) -> None:
        self.client.close()


def open_ssh(
    *,
    host: str,
    username: str,
    port: int = 22,
    password: str | None = None,
    pkey_path: str | None = None,
    connect_timeout: float = 20.0,
) -> SSHNode:
    client = paramiko.SSHClient()
    client.set_missing_host_key_policy(paramiko.AutoAddPolicy())

    pkey = None
    if pkey_path:
        for key_cls in (
            paramiko.RSAKey,
            paramiko.Ed25519Key,
            paramiko.ECDSAKey,
        ):
            try:
                pkey = key_cls.from_private_key_file(pkey_path)
                break
            except paramiko.SSHException:
                continue

    try:
        client.connect(
            hostname=host,
            port=port,
            username=username,
            password=password if not pkey else None,
            pkey=pkey,
            timeout=connect_timeout,
            allow_agent=True,
            look_for_keys=True,
        )
    except (paramiko.SSHException, OSError) as e:
        client.close()
        raise NodeConnectionError(f"ssh {username}@{host}:{port}: {e}") from e

    return SSHNode(client, name=host)
