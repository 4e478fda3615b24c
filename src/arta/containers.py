"""
Named, isolated execution environments.

The registry always holds a container called "default" which cannot be
destroyed.  Exactly one container is active at a time; destroying the active
container makes "default" active again.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from .environment import Environment
from .errors import ExecutionError, ArtaIOError

logger = logging.getLogger(__name__)

DEFAULT_CONTAINER = "default"


@dataclass
class ContainerInfo:
    """One row of LIST CONTAINERS."""
    name: str
    allow_actions: bool
    readonly: bool
    is_active: bool


@dataclass
class Container:
    """An Environment plus its permission flags."""
    name: str
    environment: Environment
    allow_actions: bool = False
    readonly: bool = False
    created_at: datetime = field(default_factory=datetime.now)

    def info(self, is_active: bool) -> ContainerInfo:
        return ContainerInfo(self.name, self.allow_actions, self.readonly, is_active)


class ContainerRegistry:
    """
    Owns the containers of one session.

    Usage:
        registry = ContainerRegistry()
        registry.create("build", allow_actions=True)
        registry.switch("build")
        env = registry.active_environment
    """

    def __init__(self, start_folder: Optional[Path] = None):
        self.start_folder = start_folder
        self._containers: Dict[str, Container] = {
            DEFAULT_CONTAINER: Container(DEFAULT_CONTAINER, Environment(start_folder)),
        }
        self.active_name = DEFAULT_CONTAINER

    def __contains__(self, name: str) -> bool:
        return name in self._containers

    def __len__(self) -> int:
        return len(self._containers)

    def _require(self, name: str) -> Container:
        container = self._containers.get(name)
        if container is None:
            raise ExecutionError(f"Container '{name}' does not exist")
        return container

    @property
    def active(self) -> Container:
        return self._containers[self.active_name]

    @property
    def active_environment(self) -> Environment:
        return self.active.environment

    def get(self, name: str) -> Container:
        return self._require(name)

    def create(self, name: str, allow_actions: bool = False,
               readonly: bool = False) -> Container:
        """Create a container with a fresh Environment rooted at the start folder."""
        if name in self._containers:
            raise ExecutionError(f"Container '{name}' already exists")
        container = Container(name, Environment(self.start_folder),
                              allow_actions=allow_actions, readonly=readonly)
        self._containers[name] = container
        logger.info("created container %s (allow_actions=%s, readonly=%s)",
                    name, allow_actions, readonly)
        return container

    def switch(self, name: str) -> Container:
        container = self._require(name)
        self.active_name = name
        logger.info("switched to container %s", name)
        return container

    def destroy(self, name: str) -> None:
        if name == DEFAULT_CONTAINER:
            raise ExecutionError("Cannot destroy the default container")
        self._require(name)
        del self._containers[name]
        if self.active_name == name:
            self.active_name = DEFAULT_CONTAINER
        logger.info("destroyed container %s", name)

    def list(self) -> List[ContainerInfo]:
        """Container summaries in creation order."""
        return [c.info(c.name == self.active_name) for c in self._containers.values()]

    def export_text(self, name: str) -> str:
        """Render a container as a replayable script."""
        container = self._require(name)
        env = container.environment
        lines = [
            f"-- Exported container: {container.name}",
            f"-- Created: {container.created_at:%Y-%m-%d %H:%M:%S}",
            f"-- Allow actions: {str(container.allow_actions).lower()}",
            f"-- Readonly: {str(container.readonly).lower()}",
            "",
        ]
        for var_name, value in env.variables.items():
            # loop shadow variables ("f.name") are not valid LET targets
            if "." in var_name:
                continue
            lines.append(f"LET {var_name} = {value.to_literal()};")
        lines.append("")
        lines.append(f'ENTER FOLDER "{env.current_folder}";')
        return "\n".join(lines) + "\n"

    def export(self, name: str, path) -> Path:
        """Write export_text(name) to path (resolved against the active folder)."""
        text = self.export_text(name)
        target = self.active_environment.resolve_path(path)
        try:
            target.write_text(text, encoding="utf-8")
        except OSError as e:
            raise ArtaIOError(e)
        logger.info("exported container %s to %s", name, target)
        return target
