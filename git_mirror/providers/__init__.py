"""
Providers — Enumerate every repository in a GitLab group or GitHub organization.
"""

from __future__ import annotations

from .base import DEFAULT_USER_AGENT, Provider
from .github import GitHub
from .gitlab import GitLab

PROVIDERS = {
    "gitlab": GitLab,
    "github": GitHub,
}


def create_provider(
    kind: str,
    namespace: str,
    url: str | None = None,
    private_token: str | None = None,
    user_agent: str = DEFAULT_USER_AGENT,
) -> Provider:
    """Build the provider for `kind` ("gitlab" or "github")."""
    try:
        provider_cls = PROVIDERS[kind.lower()]
    except KeyError:
        raise ValueError(
            f"Unknown provider '{kind}', expected one of: {', '.join(PROVIDERS)}"
        ) from None
    return provider_cls(
        namespace=namespace,
        url=url,
        private_token=private_token,
        user_agent=user_agent,
    )


__all__ = [
    "Provider",
    "GitLab",
    "GitHub",
    "PROVIDERS",
    "DEFAULT_USER_AGENT",
    "create_provider",
]
