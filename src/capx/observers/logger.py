# src/capx/observers/logger.py

from __future__ import annotations
import logging
import sys
from typing import Optional, TextIO
from .events import BaseEvent


class LoggerObserver:
    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def notify(self, event: BaseEvent) -> None:
        d = event.dict()
        etype = event.__class__.__name__
        msg = ", ".join(f"{k}={v}" for k, v in d.items() if k not in ("ts",))

        self.logger.info(f"[EVENT] {etype}: {msg}")


class ConsoleObserver:
    """One line per event; the CLI points it at stderr so stdout stays parseable."""

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream

    def notify(self, event: BaseEvent) -> None:
        d = event.dict()
        k = event.__class__.__name__
        data = ", ".join(f"{x}={y}" for x, y in d.items() if x not in ("ts", "run_id", "env", "context"))
        print(
            f"[{d['ts']}] {k} env={d['env']} ctx={d['context']} data={{{data}}}",
            file=self.stream or sys.stdout,
        )
