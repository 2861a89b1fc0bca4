"""Processes managed by the control plane and the invocations routed to them."""

from __future__ import annotations

import dataclasses
import logging
import threading
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional, Protocol

from praasctl.backend import ProcessInstance
from praasctl.deployment import SwapLocation
from praasctl.errors import InvalidProcessStateError

logger = logging.getLogger("praasctl.process")

CreationCallback = Callable[[Optional["Process"], Optional[str]], None]
ResponseCallback = Callable[[int, dict], None]

INVOCATION_ID_LENGTH = 16


class _DataPlaneConnection(Protocol):
    def send_swap_request(self, path: str) -> None: ...

    def send_invocation(self, function_name: str, invocation_id: str, payload: bytes) -> None: ...


class ProcessStatus(Enum):
    ALLOCATING = "allocating"
    ALLOCATED = "allocated"
    SWAPPING_OUT = "swapping_out"
    SWAPPED_OUT = "swapped_out"
    CLOSED = "closed"
    FAILURE = "failure"

    def __str__(self) -> str:
        return self.name


@dataclass
class ProcessResources:
    """Resources requested for a process, as given by the client."""

    vcpus: str
    memory: str
    sandbox_id: str = ""


@dataclass
class DataPlaneMetrics:
    computation_time: int = 0
    invocations: int = 0
    last_invocation: int = 0
    last_report: float = 0.0


@dataclass
class SessionState:
    swap: Optional[SwapLocation] = None


@dataclass
class PendingInvocation:
    """An invocation waiting for its result from the process."""

    request: Any
    callback: ResponseCallback
    function_name: str
    invocation_id: str
    start: float
    submitted: bool = False


class Process:
    """A process allocated for an application.

    The connection is any object with ``send_swap_request(path)`` and
    ``send_invocation(function_name, invocation_id, payload)``; a request is any
    object with a ``body`` holding the payload bytes.
    """

    def __init__(self, name: str, application: Any, resources: ProcessResources) -> None:
        self.name = name
        self.application = application
        self.resources = resources
        self.status = ProcessStatus.ALLOCATING
        self.handle: Optional[ProcessInstance] = None
        self.connection: Optional[_DataPlaneConnection] = None
        self.state = SessionState()
        self.invocations: list[PendingInvocation] = []
        self.lock = threading.RLock()
        self._active_invocations = 0
        self._metrics = DataPlaneMetrics()
        self._metrics_lock = threading.Lock()
        self._creation_callback: Optional[CreationCallback] = None
        self._wait_for_allocation = False

    def __repr__(self) -> str:
        return f"Process({self.name!r}, status={self.status})"

    @property
    def active_invocations(self) -> int:
        """Invocations submitted or pending that have not finished."""
        return self._active_invocations

    def set_handle(self, handle: ProcessInstance) -> None:
        self.handle = handle

    def connect(self, connection: _DataPlaneConnection) -> None:
        """Register the data-plane connection of the process."""
        if self.status is not ProcessStatus.ALLOCATING:
            raise InvalidProcessStateError("Can't register process")
        self.connection = connection
        self.status = ProcessStatus.ALLOCATED
        self.send_invocations()
        self.created_callback(None)

    def close_connection(self) -> None:
        self.status = ProcessStatus.CLOSED
        self.connection = None

    def update_metrics(self, time: int, invocations: int, timestamp: int) -> None:
        with self._metrics_lock:
            now = _now()
            if now >= self._metrics.last_report:
                self._metrics.computation_time = time
                self._metrics.invocations = invocations
                self._metrics.last_invocation = timestamp
                self._metrics.last_report = now

    def get_metrics(self) -> DataPlaneMetrics:
        """A snapshot of the last reported metrics."""
        with self._metrics_lock:
            return dataclasses.replace(self._metrics)

    def swap(self) -> None:
        """Ask the process to swap its state out to its swap location."""
        if self.connection is None:
            return
        if self.state.swap is None:
            raise InvalidProcessStateError(f"Process {self.name} has no swap location")
        self.connection.send_swap_request(self.state.swap.root_path())

    def add_invocation(
        self, request: Any, callback: ResponseCallback, function_name: str, start: float
    ) -> PendingInvocation:
        invocation = PendingInvocation(
            request=request,
            callback=callback,
            function_name=function_name,
            invocation_id=str(uuid.uuid4())[:INVOCATION_ID_LENGTH],
            start=start,
        )
        self.invocations.append(invocation)
        self._active_invocations += 1
        if self.status is ProcessStatus.ALLOCATED:
            self._send_invocation(invocation)
        return invocation

    def send_invocations(self) -> None:
        for invocation in self.invocations:
            if not invocation.submitted:
                self._send_invocation(invocation)

    def _send_invocation(self, invocation: PendingInvocation) -> None:
        if self.connection is None:
            return
        logger.info("Submitting invocation %s to %s", invocation.invocation_id, self.name)
        self.connection.send_invocation(
            invocation.function_name, invocation.invocation_id, bytes(invocation.request.body)
        )
        invocation.submitted = True

    def finish_invocation(self, invocation_id: str, return_code: int, payload: bytes) -> bool:
        """Answer the client of a finished invocation; False if it is unknown."""
        invocation = next(
            (item for item in self.invocations if item.invocation_id == invocation_id), None
        )
        if invocation is None:
            logger.error("Ignore non-existing invocation %s", invocation_id)
            return False

        self._active_invocations -= 1
        duration_us = int((time.perf_counter() - invocation.start) * 1_000_000)
        logger.info("Invocation finished, took %d us", duration_us)

        body = {
            "function": invocation.function_name,
            "invocation_id": invocation_id,
            "return_code": return_code,
            "result": bytes(payload).decode(errors="replace"),
        }
        self.invocations.remove(invocation)
        invocation.callback(200, body)
        return True

    def set_creation_callback(
        self, callback: Optional[CreationCallback], wait_for_allocation: bool
    ) -> None:
        self._creation_callback = callback
        self._wait_for_allocation = wait_for_allocation

    def created_callback(self, error_msg: Optional[str] = None) -> None:
        """Report creation once both the backend and the process are ready.

        Failures are reported at once; success waits for the backend handle and,
        when requested, for the process to connect.
        """
        callback = self._creation_callback
        if callback is None:
            return

        if error_msg is not None:
            self._creation_callback = None
            callback(None, error_msg)
            return

        if self.handle is None:
            return
        if self._wait_for_allocation and self.status is not ProcessStatus.ALLOCATED:
            return

        def on_connected(error: Optional[str]) -> None:
            if self._creation_callback is not callback:
                return
            self._creation_callback = None
            if error is not None:
                callback(None, error)
            else:
                callback(self, None)

        self.handle.connect(on_connected)


def _now() -> float:
    return time.time()