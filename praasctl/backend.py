"""Backends that allocate process instances for the control plane."""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional
from urllib.error import HTTPError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

logger = logging.getLogger("praasctl.backend")

AllocationCallback = Callable[[Optional["ProcessInstance"], Optional[str]], None]
Transport = Callable[[str, dict, dict], "tuple[int, bytes]"]


class BackendType(Enum):
    NONE = "none"
    DOCKER = "docker"
    AWS_FARGATE = "aws_fargate"
    AWS_LAMBDA = "aws_lambda"


def parse_backend_type(mode: str) -> BackendType:
    """Map a configuration string to a backend type; unknown names give NONE."""
    for kind in BackendType:
        if kind is not BackendType.NONE and kind.value == mode:
            return kind
    return BackendType.NONE


@dataclass
class ProcessInstance:
    """Network location of an allocated process."""

    ip_address: str
    port: int

    def connect(self, callback: Callable[[Optional[str]], None]) -> None:
        """Finish connecting; the instance is reachable right away."""
        callback(None)


@dataclass
class DockerInstance(ProcessInstance):
    container_id: str = ""


class Backend(ABC):
    """Allocates process instances on some infrastructure."""

    def __init__(self) -> None:
        self.tcp_ip = ""
        self.tcp_port = 0

    def configure_tcpserver(self, ip: str, port: int) -> None:
        self.tcp_ip = ip
        self.tcp_port = port

    @abstractmethod
    def allocate_process(self, process: Any, resources: Any, callback: AllocationCallback) -> None:
        """Start allocating a process; report through callback(instance, error)."""

    @abstractmethod
    def shutdown(self, instance: ProcessInstance) -> None:
        """Release an allocated instance."""

    @abstractmethod
    def max_memory(self) -> float:
        """Largest memory size a process may request."""

    @abstractmethod
    def max_vcpus(self) -> float:
        """Largest number of vCPUs a process may request."""


def _urllib_transport(base_url: str) -> Transport:
    def post(path: str, params: dict, body: dict) -> tuple[int, bytes]:
        url = f"{base_url}{path}?{urlencode(params)}"
        request = Request(
            url,
            data=json.dumps(body).encode(),
            method="POST",
            headers={"Content-Type": "application/json"},
        )
        try:
            with urlopen(request) as response:
                return response.status, response.read()
        except HTTPError as error:
            return error.code, error.read()

    return post


class DockerBackend(Backend):
    """Asks a local container manager over HTTP to start processes."""

    def __init__(self, cfg: Any, transport: Optional[Transport] = None) -> None:
        super().__init__()
        self._transport = transport or _urllib_transport(f"http://{cfg.address}:{cfg.port}")
        self.instances: list[ProcessInstance] = []

    def allocate_process(self, process: Any, resources: Any, callback: AllocationCallback) -> None:
        body = {
            "container-name": process.application.resources.code_resource_name,
            "controlplane-address": f"{self.tcp_ip}:{self.tcp_port}",
        }
        try:
            status, payload = self._transport("/create", {"process": process.name}, body)
        except OSError as error:
            logger.error("Container creation request failed: %s", error)
            callback(None, "Unknown error!")
            return

        text = payload.decode(errors="replace")
        if status == 500:
            callback(None, f"Process {process.name} could not be created, reason: {text}")
            return
        if status == 200:
            try:
                data = json.loads(text)
                instance = DockerInstance(
                    ip_address=str(data["ip-address"]),
                    port=int(data["port"]),
                    container_id=str(data["container-id"]),
                )
            except (ValueError, KeyError, TypeError):
                callback(None, f"Unknown error! Response: {text}")
                return
            self.instances.append(instance)
            callback(instance, None)
            return
        callback(None, f"Unknown error! Response: {text}")

    def shutdown(self, instance: ProcessInstance) -> None:
        self.instances = [item for item in self.instances if item is not instance]

    def max_memory(self) -> float:
        return 1024

    def max_vcpus(self) -> float:
        return 1


def create_backend(cfg: Any) -> Optional[Backend]:
    """Build the backend selected by the configuration, or None."""
    if cfg.backend_type is BackendType.DOCKER:
        return DockerBackend(cfg.backend)
    return None