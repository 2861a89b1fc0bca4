"""Configuration of the process controller."""

from __future__ import annotations

import argparse
import json
import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import IO, Any, Mapping, Optional, Sequence

from praasctl.errors import InvalidConfigurationError

logger = logging.getLogger("praasctl.controller_config")

DEFAULT_CODE_LOCATION = "/code"
DEFAULT_CODE_CONFIG_LOCATION = "config.json"
DEFAULT_PORT = 8080
DEFAULT_FUNCTION_WORKERS = 1
DEFAULT_MSG_SIZE = 8 * 1024
DEFAULT_PROCESS_ID = "TEST_PROCESS_ID"


class Language(Enum):
    NONE = "none"
    CPP = "cpp"
    PYTHON = "python"


def parse_language(name: str) -> Language:
    """Map a language name to a Language; unknown names give NONE."""
    lowered = str(name).lower()
    for language in Language:
        if language is not Language.NONE and language.value == lowered:
            return language
    return Language.NONE


class IPCMode(Enum):
    NONE = "none"
    POSIX_MQ = "posix_mq"


def parse_ipc_mode(mode: str) -> IPCMode:
    """Map an IPC mode name to an IPCMode; unknown names give NONE."""
    lowered = str(mode).lower()
    for ipc_mode in IPCMode:
        if ipc_mode is not IPCMode.NONE and ipc_mode.value == lowered:
            return ipc_mode
    return IPCMode.NONE


def _field(data: Any, key: str) -> Any:
    try:
        return data[key]
    except KeyError:
        raise InvalidConfigurationError(f"Missing configuration field {key}") from None
    except TypeError:
        raise InvalidConfigurationError(f"Expected an object holding {key}") from None


@dataclass
class CodeConfig:
    location: str = DEFAULT_CODE_LOCATION
    config_location: str = DEFAULT_CODE_CONFIG_LOCATION
    language: Language = Language.CPP
    language_runtime_path: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CodeConfig":
        return cls(
            location=str(_field(data, "location")),
            config_location=str(_field(data, "configuration-location")),
            language=parse_language(_field(data, "language")),
        )

    def load_env(self, environ: Optional[Mapping[str, str]] = None) -> None:
        """Override code locations from CODE_LOCATION and CONFIG_LOCATION."""
        env = os.environ if environ is None else environ
        location = env.get("CODE_LOCATION")
        if location is not None:
            self.location = location
        else:
            logger.warning("Couldn't find environment variable CODE_LOCATION")

        config_location = env.get("CONFIG_LOCATION")
        if config_location is not None:
            self.config_location = config_location
        else:
            logger.warning("Couldn't find environment variable CONFIG_LOCATION")


@dataclass
class ControllerConfig:
    port: int = DEFAULT_PORT
    verbose: bool = False
    function_workers: int = DEFAULT_FUNCTION_WORKERS
    ipc_mode: IPCMode = IPCMode.POSIX_MQ
    ipc_message_size: int = DEFAULT_MSG_SIZE
    ipc_name_prefix: str = ""
    deployment_location: str = ""
    process_id: str = DEFAULT_PROCESS_ID
    control_plane_addr: Optional[str] = None
    code: CodeConfig = field(default_factory=CodeConfig)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ControllerConfig":
        return cls(
            port=int(_field(data, "port")),
            verbose=bool(_field(data, "verbose")),
            function_workers=int(_field(data, "function_workers")),
            process_id=str(_field(data, "process_id")),
            ipc_mode=parse_ipc_mode(_field(data, "ipc-mode")),
            ipc_message_size=int(_field(data, "ipc-message-size")),
            code=CodeConfig.from_dict(_field(data, "code")),
        )

    @classmethod
    def from_stream(cls, stream: IO[str]) -> "ControllerConfig":
        try:
            data = json.load(stream)
        except json.JSONDecodeError as error:
            raise InvalidConfigurationError(f"Invalid JSON configuration: {error}") from error
        if not isinstance(data, dict):
            raise InvalidConfigurationError("Configuration must be a JSON object")
        return cls.from_dict(data)

    def load_env(self, environ: Optional[Mapping[str, str]] = None) -> None:
        """Read the control-plane address and process id from the environment."""
        env = os.environ if environ is None else environ
        address = env.get("CONTROLPLANE_ADDR")
        if address is not None:
            self.control_plane_addr = address
        else:
            logger.warning("Couldn't find environment variable CONTROLPLANE_ADDR")

        process_id = env.get("PROCESS_ID")
        if process_id is not None:
            self.process_id = process_id
        else:
            logger.warning("Couldn't find environment variable PROCESS_ID")

        self.code.load_env(env)


def load_controller_config(argv: Optional[Sequence[str]] = None) -> ControllerConfig:
    """Read the controller configuration from the command line and the environment."""
    parser = argparse.ArgumentParser(
        prog="praas-process-controller",
        description="Executes PraaS functions and communication.",
    )
    parser.add_argument("-c", "--config", default="", help="JSON config.")
    options = parser.parse_args(argv)

    if options.config:
        try:
            with open(options.config, encoding="utf-8") as stream:
                cfg = ControllerConfig.from_stream(stream)
        except OSError:
            logger.error("Could not open config file %s", options.config)
            raise SystemExit(1) from None
    else:
        cfg = ControllerConfig()

    cfg.load_env()
    return cfg