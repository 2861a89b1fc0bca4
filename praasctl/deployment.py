"""Deployment targets and the locations of swapped process state."""

from __future__ import annotations

import logging
import tempfile
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union

logger = logging.getLogger("praasctl.deployment")


class SwapLocation(ABC):
    """Where the state of a swapped-out process is kept."""

    @abstractmethod
    def root_path(self) -> str:
        """Root of the swap storage."""

    @abstractmethod
    def path(self, process_name: str) -> str:
        """Location of one process's swapped state."""


class DiskSwapLocation(SwapLocation):
    """Swap state kept on a local file system."""

    def __init__(self, fs_path: Union[str, Path]) -> None:
        self.fs_path = Path(fs_path)

    def root_path(self) -> str:
        return str(self.fs_path)

    def path(self, process_name: str) -> str:
        return str(self.fs_path / "swaps" / process_name)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, DiskSwapLocation) and other.fs_path == self.fs_path

    def __repr__(self) -> str:
        return f"DiskSwapLocation({str(self.fs_path)!r})"


class DeploymentType(Enum):
    NONE = "none"
    LOCAL = "local"


class Deployment(ABC):
    """Decides where processes swap their state."""

    @abstractmethod
    def get_location(self, process_name: str) -> SwapLocation:
        """Location for the swapped state of a process."""

    @abstractmethod
    def delete_swap(self, location: SwapLocation) -> None:
        """Remove swapped state."""


class LocalDeployment(Deployment):
    """Every process swaps to the same local directory."""

    def __init__(self, path: Union[str, Path, None] = None) -> None:
        self.path = Path(path) if path is not None else Path(tempfile.gettempdir())

    def get_location(self, process_name: str) -> SwapLocation:
        return DiskSwapLocation(self.path)

    def delete_swap(self, location: SwapLocation) -> None:
        # Swaps may live on other machines, so they are left in place.
        logger.warning("Not removing swap at %s: local swaps are not deleted", location.root_path())


def create_deployment(cfg: Any) -> Optional[Deployment]:
    """Build the deployment selected by the configuration, or None."""
    if cfg.deployment_type is DeploymentType.LOCAL:
        return LocalDeployment()
    return None