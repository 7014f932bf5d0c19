"""
Repository Descriptor — One listed repository.

Produced by a provider during listing and read-only afterwards.
"""

from __future__ import annotations

from pathlib import Path
from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field


class RepositoryDescriptor(BaseModel):
    """
    A repository as reported by the provider.

    `namespace_path` reproduces the nested group structure locally,
    e.g. ("team", "backend") for a project in team/backend.
    """

    model_config = ConfigDict(frozen=True)

    namespace_path: Tuple[str, ...]
    name: str
    ssh_url: str
    http_url: str

    # Username paired with the token in authenticated HTTPS URLs
    http_user: str = "oauth2"

    # Provider-side identity, used for deduplication during listing
    remote_id: str = Field(default="")

    @property
    def full_path(self) -> str:
        """Namespace path and name joined with '/', e.g. 'team/backend/api'."""
        return "/".join((*self.namespace_path, self.name))

    @property
    def sort_key(self) -> Tuple[Tuple[str, ...], str]:
        return (self.namespace_path, self.name)

    @property
    def collision_key(self) -> str:
        """Key under which two descriptors would share a directory on a case-insensitive filesystem."""
        return self.full_path.casefold()

    def local_path(self, mirror_root: Path) -> Path:
        """Where this repository's mirror lives under `mirror_root`."""
        return mirror_root.joinpath(*self.namespace_path, self.name)
