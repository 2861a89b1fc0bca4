"""Control-plane configuration."""

from __future__ import annotations

import argparse
import json
import logging
from dataclasses import dataclass, field
from typing import IO, Any, Optional, Sequence, Union

from praasctl.backend import BackendType, parse_backend_type
from praasctl.deployment import DeploymentType
from praasctl.errors import InvalidConfigurationError

logger = logging.getLogger("praasctl.config")

DEFAULT_THREADS_NUMBER = 1
DEFAULT_HTTP_PORT = 9000
DEFAULT_TCP_PORT = 8080
DEFAULT_POLLING_INTERVAL = 60
DEFAULT_SWAPPING_THRESHOLD = 600


def _require(data: dict, key: str) -> Any:
    try:
        return data[key]
    except KeyError:
        raise InvalidConfigurationError(f"Missing configuration field {key}") from None
    except TypeError:
        raise InvalidConfigurationError(f"Expected an object holding {key}") from None


@dataclass
class HTTPServerConfig:
    threads: int = DEFAULT_THREADS_NUMBER
    port: int = DEFAULT_HTTP_PORT
    enable_ssl: bool = False
    ssl_server_key: Optional[str] = None
    ssl_server_cert: Optional[str] = None
    max_payload_size: int = 1024 * 1024

    @classmethod
    def from_dict(cls, data: dict) -> "HTTPServerConfig":
        cfg = cls(
            threads=int(_require(data, "threads")),
            port=int(_require(data, "port")),
            enable_ssl=bool(_require(data, "enable_ssl")),
        )
        if cfg.enable_ssl:
            cfg.ssl_server_key = str(_require(data, "ssl_server_key"))
            cfg.ssl_server_cert = str(_require(data, "ssl_server_cert"))
        return cfg


@dataclass
class WorkersConfig:
    threads: int = DEFAULT_THREADS_NUMBER

    @classmethod
    def from_dict(cls, data: dict) -> "WorkersConfig":
        return cls(threads=int(_require(data, "threads")))


@dataclass
class DownScalerConfig:
    polling_interval: int = DEFAULT_POLLING_INTERVAL
    swapping_threshold: int = DEFAULT_SWAPPING_THRESHOLD

    @classmethod
    def from_dict(cls, data: dict) -> "DownScalerConfig":
        return cls(
            polling_interval=int(_require(data, "polling_interval")),
            swapping_threshold=int(_require(data, "swapping_threshold")),
        )


@dataclass
class TCPServerConfig:
    port: int = DEFAULT_TCP_PORT
    io_threads: int = 1

    @classmethod
    def from_dict(cls, data: dict) -> "TCPServerConfig":
        return cls(
            port=int(_require(data, "port")),
            io_threads=int(_require(data, "io_threads")),
        )


@dataclass
class BackendDockerConfig:
    address: str = "127.0.0.1"
    port: int = 8080

    @classmethod
    def from_dict(cls, data: dict) -> "BackendDockerConfig":
        return cls(address=str(_require(data, "address")), port=int(_require(data, "port")))


@dataclass
class BackendFargateConfig:
    fargate_config: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "BackendFargateConfig":
        return cls(fargate_config=str(_require(data, "fargate_config")))


BackendConfig = Union[BackendDockerConfig, BackendFargateConfig]


@dataclass
class Config:
    verbose: bool = False
    backend_type: BackendType = BackendType.DOCKER
    backend: Optional[BackendConfig] = field(default_factory=BackendDockerConfig)
    deployment_type: DeploymentType = DeploymentType.LOCAL
    public_ip_address: str = "127.0.0.1"
    http_client_io_threads: int = 1
    http: HTTPServerConfig = field(default_factory=HTTPServerConfig)
    workers: WorkersConfig = field(default_factory=WorkersConfig)
    down_scaler: DownScalerConfig = field(default_factory=DownScalerConfig)
    tcpserver: TCPServerConfig = field(default_factory=TCPServerConfig)

    @classmethod
    def defaults(cls) -> "Config":
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> "Config":
        cfg = cls(verbose=bool(_require(data, "verbose")))
        cfg.backend_type = parse_backend_type(str(_require(data, "backend-type")))
        backend_data = data.get("backend")
        if cfg.backend_type is BackendType.DOCKER:
            cfg.backend = (
                BackendDockerConfig.from_dict(backend_data)
                if backend_data is not None
                else BackendDockerConfig()
            )
        elif cfg.backend_type is BackendType.AWS_FARGATE:
            cfg.backend = (
                BackendFargateConfig.from_dict(backend_data)
                if backend_data is not None
                else BackendFargateConfig()
            )
        else:
            cfg.backend = None

        cfg.public_ip_address = str(_require(data, "ip-address"))
        cfg.http_client_io_threads = int(_require(data, "http-client-io-threads"))

        if "http" in data:
            cfg.http = HTTPServerConfig.from_dict(data["http"])
        if "workers" in data:
            cfg.workers = WorkersConfig.from_dict(data["workers"])
        if "downscaler" in data:
            cfg.down_scaler = DownScalerConfig.from_dict(data["downscaler"])
        if "tcpserver" in data:
            cfg.tcpserver = TCPServerConfig.from_dict(data["tcpserver"])
        return cfg

    @classmethod
    def from_stream(cls, stream: IO[str]) -> "Config":
        try:
            data = json.load(stream)
        except json.JSONDecodeError as error:
            raise InvalidConfigurationError(f"Invalid JSON configuration: {error}") from error
        if not isinstance(data, dict):
            raise InvalidConfigurationError("Configuration must be a JSON object")
        return cls.from_dict(data)


def parse_args(argv: Optional[Sequence[str]] = None) -> Config:
    """Read the configuration named on the command line, or use defaults."""
    parser = argparse.ArgumentParser(
        prog="praas-control-plane", description="Executes PraaS control plane."
    )
    parser.add_argument("-c", "--config", default="", help="JSON config.")
    options = parser.parse_args(argv)

    if not options.config:
        return Config.defaults()
    try:
        with open(options.config, encoding="utf-8") as stream:
            return Config.from_stream(stream)
    except OSError:
        logger.error("Could not open config file %s", options.config)
        raise SystemExit(1) from None