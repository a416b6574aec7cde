# src/capx/nodes/interface.py

from __future__ import annotations
from typing import Mapping, Optional, Protocol, Sequence


class Node(Protocol):
    """
    Somewhere commands can be executed for a cluster: the kind management
    container, a bastion reached over SSH, or the local machine.
    """

    name: str

    def run(
        self,
        argv: Sequence[str],
        *,
        env: Optional[Mapping[str, str]] = None,
        stdin_text: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> tuple[int, str, str]:
        """
        Execute argv and return (rc, stdout, stderr).
        Must raise CommandTimeoutError when the timeout expires.
        """
        ...

    def close(self) -> None:
        """Release any connection held by the node."""
        ...
