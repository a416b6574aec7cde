# src/capx/nodes/factory.py

from __future__ import annotations

from capx.config.models import NodeSpec
from capx.execution.runner import CommandRunner
from .container import ContainerNode
from .interface import Node
from .local import LocalNode
from .ssh import open_ssh


def open_node(spec: NodeSpec, *, dry_run: bool = False) -> Node:
    if spec.kind == "local":
        return LocalNode(runner=CommandRunner(label="local", dry_run=dry_run))
    if spec.kind == "container":
        return ContainerNode(
            spec.container,
            runner=CommandRunner(label=f"exec:{spec.container}", dry_run=dry_run),
        )
    if spec.kind == "ssh":
        if not spec.host:
            raise ValueError("node.host is required for ssh nodes")
        return open_ssh(
            host=spec.host,
            port=spec.port,
            username=spec.username,
            password=spec.password,
            pkey_path=spec.pkey_path,
        )
    raise ValueError(f"Unsupported node kind: {spec.kind}")
