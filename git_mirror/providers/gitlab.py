"""
GitLab Provider — Recursive group listing via the REST API v4.

Walks the group and all of its descendant subgroups, collecting every
project that belongs to them. Projects shared into a group from another
namespace are excluded (with_shared=false); projects are deduplicated by
their numeric id.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Any, Deque, Dict, List, Optional, Set
from urllib.parse import quote

from ..errors import ListingError
from ..models.repository import RepositoryDescriptor
from .base import Provider

logger = logging.getLogger(__name__)


class GitLab(Provider):
    """
    GitLab group provider.

    Authenticates with a private or personal access token sent in the
    PRIVATE-TOKEN header; anonymous access lists public projects only.
    """

    default_url = "https://gitlab.com"
    http_requires_credential = True
    http_user = "oauth2"

    def __init__(self, *args: Any, recursive: bool = True, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.recursive = recursive

    @property
    def name(self) -> str:
        return "gitlab"

    def auth_headers(self) -> Dict[str, str]:
        if self.private_token:
            return {"PRIVATE-TOKEN": self.private_token}
        return {}

    def _group_url(self, group: str, resource: str) -> str:
        return f"{self.url}/api/v4/groups/{quote(group, safe='')}/{resource}"

    def list_repositories(
        self, namespace: Optional[str] = None
    ) -> List[RepositoryDescriptor]:
        group = namespace or self.namespace
        logger.info(f"[gitlab] Listing projects of group {group} on {self.url}")

        projects: Dict[str, RepositoryDescriptor] = {}
        pending: Deque[str] = deque([group])
        visited: Set[str] = set()

        with self.http_client() as client:
            while pending:
                current = pending.popleft()
                if current in visited:
                    continue
                visited.add(current)

                for payload in self.paginate(
                    client, self._group_url(current, "projects"), {"with_shared": "false"}
                ):
                    descriptor = self._to_descriptor(payload)
                    projects.setdefault(descriptor.remote_id, descriptor)

                if not self.recursive:
                    continue

                for subgroup in self.paginate(client, self._group_url(current, "subgroups")):
                    (subgroup_id,) = self._require(subgroup, "id")
                    logger.debug(
                        f"[gitlab] Descending into subgroup {subgroup.get('full_path', subgroup_id)}"
                    )
                    pending.append(str(subgroup_id))

        descriptors = sorted(projects.values(), key=lambda d: d.sort_key)
        logger.info(
            f"[gitlab] Found {len(descriptors)} project(s) in {len(visited)} group(s)"
        )
        return descriptors

    def _to_descriptor(self, payload: Dict[str, Any]) -> RepositoryDescriptor:
        project_id, full_path, ssh_url, http_url = self._require(
            payload, "id", "path_with_namespace", "ssh_url_to_repo", "http_url_to_repo"
        )
        segments = str(full_path).split("/")
        if len(segments) < 2:
            raise ListingError(f"Malformed gitlab project path: {full_path!r}")

        return RepositoryDescriptor(
            namespace_path=tuple(segments[:-1]),
            name=segments[-1],
            ssh_url=ssh_url,
            http_url=http_url,
            http_user=self.http_user,
            remote_id=str(project_id),
        )
