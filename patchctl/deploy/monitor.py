"""Follow a deployed app until its process exits."""

from __future__ import annotations

import logging
import sys
import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from typing import TextIO

from patchctl.core import templates
from patchctl.core.errors import MonitorError, TransportError
from patchctl.core.model import ProcessState
from patchctl.deploy.session import DeviceSession
from patchctl.transports.base import RemoteProcess

LOGGER = logging.getLogger(__name__)

STARTUP_GRACE_SECONDS = 0.5
POLL_INTERVAL_SECONDS = 1.0


class LifecycleMonitor:
    """Relay the app log and block until the app process is gone.

    ``sleep`` defaults to waiting on the cancel event, so :meth:`cancel`
    interrupts a pending delay. Tests pass their own ``sleep`` to avoid real
    waits.
    """

    def __init__(
        self,
        session: DeviceSession,
        package_name: str,
        *,
        log_output: bool = True,
        startup_grace: float = STARTUP_GRACE_SECONDS,
        poll_interval: float = POLL_INTERVAL_SECONDS,
        sleep: Callable[[float], object] | None = None,
        output: TextIO | None = None,
    ) -> None:
        self.session = session
        self.package_name = package_name
        self.log_output = log_output
        self.startup_grace = startup_grace
        self.poll_interval = poll_interval
        self._cancelled = threading.Event()
        self._sleep = sleep or self._cancelled.wait
        self.output = output or sys.stdout
        self.captured: list[str] = []
        self.state = ProcessState.NOT_STARTED

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        self._cancelled.set()

    def _relay(self, process: RemoteProcess) -> None:
        stream = process.stdout
        if stream is None:
            return
        for line in stream:
            if self.log_output:
                self.output.write(line)
                self.output.flush()
            else:
                self.captured.append(line)

    def _alive(self) -> bool:
        try:
            return self.session.process_alive(self.package_name)
        except TransportError as exc:
            raise MonitorError(
                f"An error occurred while monitoring state of {self.package_name} on {self.session.serial}: {exc}"
            ) from exc

    def watch(self) -> ProcessState:
        process = self.session.spawn(templates.substitute(templates.COMMAND_LOGCAT, self.package_name))
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="patchctl-log")
        relay = executor.submit(self._relay, process)
        try:
            self._sleep(self.startup_grace)
            while not self.cancelled:
                if not self._alive():
                    if self.state is ProcessState.RUNNING:
                        self.state = ProcessState.EXITED
                    else:
                        LOGGER.warning("%s was not running after start-up", self.package_name)
                    break
                self.state = ProcessState.RUNNING
                self._sleep(self.poll_interval)
        finally:
            process.destroy()
            executor.shutdown(wait=True)
            if relay.exception() is not None:
                LOGGER.warning("Log relay stopped: %s", relay.exception())
            if process.stdout is not None:
                process.stdout.close()

        if self.cancelled:
            LOGGER.info("Monitoring of %s cancelled", self.package_name)
        return self.state
