"""
GitHub Provider — Organization repository listing.

GitHub has no nested organizations, so listing is a single paginated
endpoint. Anonymous access works for public repositories but is
subject to much lower rate limits.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from ..models.repository import RepositoryDescriptor
from .base import Provider

logger = logging.getLogger(__name__)


class GitHub(Provider):
    """GitHub organization provider."""

    default_url = "https://api.github.com"
    http_requires_credential = False
    http_user = "x-access-token"

    @property
    def name(self) -> str:
        return "github"

    def auth_headers(self) -> Dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self.private_token:
            headers["Authorization"] = f"token {self.private_token}"
        return headers

    def list_repositories(
        self, namespace: Optional[str] = None
    ) -> List[RepositoryDescriptor]:
        org = namespace or self.namespace
        logger.info(f"[github] Listing repositories of organization {org} on {self.url}")

        url = f"{self.url}/orgs/{quote(org, safe='')}/repos"
        with self.http_client() as client:
            payloads = self.paginate(client, url, {"type": "all"})

        descriptors = {}
        for payload in payloads:
            descriptor = self._to_descriptor(payload, org)
            descriptors.setdefault(descriptor.remote_id, descriptor)

        result = sorted(descriptors.values(), key=lambda d: d.sort_key)
        logger.info(f"[github] Found {len(result)} repository(ies) in {org}")
        return result

    def _to_descriptor(self, payload: Dict[str, Any], org: str) -> RepositoryDescriptor:
        repo_id, name, ssh_url, clone_url = self._require(
            payload, "id", "name", "ssh_url", "clone_url"
        )
        owner = (payload.get("owner") or {}).get("login") or org

        return RepositoryDescriptor(
            namespace_path=(owner,),
            name=name,
            ssh_url=ssh_url,
            http_url=clone_url,
            http_user=self.http_user,
            remote_id=str(repo_id),
        )
