"""
Tests for the GitLab and GitHub providers.

All HTTP traffic goes through httpx.MockTransport — no network needed.
"""

from __future__ import annotations

import httpx
import pytest

from git_mirror.errors import ListingError
from git_mirror.providers import GitHub, GitLab, create_provider
from git_mirror.providers.base import DEFAULT_USER_AGENT


GITLAB_URL = "https://gitlab.example.com"
GITHUB_URL = "https://api.github.example.com"


def _project(project_id: int, path: str) -> dict:
    return {
        "id": project_id,
        "name": path.rsplit("/", 1)[-1].title(),
        "path_with_namespace": path,
        "ssh_url_to_repo": f"git@gitlab.example.com:{path}.git",
        "http_url_to_repo": f"{GITLAB_URL}/{path}.git",
    }


def _github_repo(repo_id: int, name: str, org: str = "acme") -> dict:
    return {
        "id": repo_id,
        "name": name,
        "owner": {"login": org},
        "ssh_url": f"git@github.com:{org}/{name}.git",
        "clone_url": f"https://github.com/{org}/{name}.git",
    }


def _json(request: httpx.Request, data, headers=None) -> httpx.Response:
    return httpx.Response(200, json=data, headers=headers or {}, request=request)


def _client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


class TestGitLabListing:
    """Recursive group listing."""

    def test_includes_subgroup_projects_without_duplicates(self):
        """Parent and subgroup projects are merged; a project listed twice appears once."""
        routes = {
            "/api/v4/groups/parent/projects": [_project(1, "parent/x")],
            "/api/v4/groups/parent/subgroups": [{"id": 10, "full_path": "parent/sub"}],
            "/api/v4/groups/10/projects": [
                _project(2, "parent/sub/y"),
                _project(1, "parent/x"),
            ],
            "/api/v4/groups/10/subgroups": [],
        }

        def handler(request):
            return _json(request, routes[request.url.path])

        provider = GitLab(namespace="parent", url=GITLAB_URL, client=_client(handler))
        repos = provider.list_repositories()

        # Sorted by namespace path, then name
        assert [r.full_path for r in repos] == ["parent/x", "parent/sub/y"]

    def test_excludes_projects_shared_from_other_groups(self):
        """Project listings ask GitLab for owned projects only."""
        seen_params = []

        def handler(request):
            if request.url.path.endswith("/projects"):
                seen_params.append(dict(request.url.params))
                if request.url.params.get("with_shared") == "false":
                    return _json(request, [_project(1, "team/own")])
                return _json(request, [_project(1, "team/own"), _project(9, "other-team/foreign")])
            return _json(request, [])

        provider = GitLab(namespace="team", url=GITLAB_URL, client=_client(handler))
        repos = provider.list_repositories()

        assert [r.full_path for r in repos] == ["team/own"]
        assert seen_params == [{"per_page": "100", "with_shared": "false"}]

    def test_shared_filter_kept_on_later_pages(self):
        def handler(request):
            if request.url.path.endswith("/subgroups"):
                return _json(request, [])
            assert request.url.params["with_shared"] == "false"
            if request.url.params.get("page") == "2":
                return _json(request, [_project(2, "team/b")])
            return _json(request, [_project(1, "team/a")], {"X-Next-Page": "2"})

        provider = GitLab(namespace="team", url=GITLAB_URL, client=_client(handler))

        assert [r.full_path for r in provider.list_repositories()] == ["team/a", "team/b"]

    def test_descriptor_fields(self):
        """Namespace path, name and URLs come from the project payload."""

        def handler(request):
            if request.url.path.endswith("/projects"):
                return _json(request, [_project(7, "team/backend/api")])
            return _json(request, [])

        provider = GitLab(namespace="team", url=GITLAB_URL, client=_client(handler))
        (repo,) = provider.list_repositories()

        assert repo.namespace_path == ("team", "backend")
        assert repo.name == "api"
        assert repo.ssh_url == "git@gitlab.example.com:team/backend/api.git"
        assert repo.http_url == f"{GITLAB_URL}/team/backend/api.git"
        assert repo.http_user == "oauth2"
        assert repo.remote_id == "7"

    def test_non_recursive_skips_subgroups(self):
        """With recursive=False only the group's own projects are listed."""
        requested = []

        def handler(request):
            requested.append(request.url.path)
            return _json(request, [_project(1, "parent/x")])

        provider = GitLab(
            namespace="parent", url=GITLAB_URL, client=_client(handler), recursive=False
        )
        provider.list_repositories()

        assert requested == ["/api/v4/groups/parent/projects"]

    def test_sends_token_and_user_agent(self):
        """Every request carries the client signature and the PRIVATE-TOKEN header."""
        seen = []

        def handler(request):
            seen.append(request.headers)
            return _json(request, [])

        provider = GitLab(
            namespace="parent",
            url=GITLAB_URL,
            private_token="glpat-secret",
            client=_client(handler),
        )
        provider.list_repositories()

        assert seen
        for headers in seen:
            assert headers["User-Agent"] == DEFAULT_USER_AGENT
            assert headers["PRIVATE-TOKEN"] == "glpat-secret"

    def test_anonymous_access_sends_no_token(self):
        """Without a token no auth header is sent."""
        seen = []

        def handler(request):
            seen.append(request.headers)
            return _json(request, [])

        GitLab(namespace="parent", url=GITLAB_URL, client=_client(handler)).list_repositories()

        assert all("PRIVATE-TOKEN" not in headers for headers in seen)

    def test_provider_flags(self):
        """GitLab needs a token for HTTPS clones."""
        provider = GitLab(namespace="parent")
        assert provider.name == "gitlab"
        assert provider.url == "https://gitlab.com"
        assert provider.http_requires_credential is True


class TestPagination:
    """Following continuation links until exhausted."""

    def test_follows_link_header(self):
        """rel="next" links are followed page by page."""

        def handler(request):
            if request.url.path.endswith("/subgroups"):
                return _json(request, [])
            if request.url.params.get("page") == "2":
                return _json(request, [_project(2, "parent/b")])
            next_link = f'<{GITLAB_URL}/api/v4/groups/parent/projects?page=2&per_page=100>; rel="next"'
            return _json(request, [_project(1, "parent/a")], {"Link": next_link})

        provider = GitLab(namespace="parent", url=GITLAB_URL, client=_client(handler))
        repos = provider.list_repositories()

        assert [r.name for r in repos] == ["a", "b"]

    def test_follows_x_next_page(self):
        """GitLab's X-Next-Page header is used when there is no Link header."""

        def handler(request):
            if request.url.path.endswith("/subgroups"):
                return _json(request, [])
            page = request.url.params.get("page", "1")
            if page == "1":
                return _json(request, [_project(1, "parent/a")], {"X-Next-Page": "2"})
            return _json(request, [_project(2, "parent/b")], {"X-Next-Page": ""})

        provider = GitLab(namespace="parent", url=GITLAB_URL, client=_client(handler))

        assert [r.name for r in provider.list_repositories()] == ["a", "b"]

    def test_truncated_listing_is_fatal(self):
        """Fewer items than X-Total announces raises ListingError."""

        def handler(request):
            if request.url.path.endswith("/subgroups"):
                return _json(request, [])
            return _json(request, [_project(1, "parent/a")], {"X-Total": "2"})

        provider = GitLab(namespace="parent", url=GITLAB_URL, client=_client(handler))

        with pytest.raises(ListingError, match="Truncated"):
            provider.list_repositories()

    def test_pagination_loop_is_detected(self):
        """A next link pointing back at the same page fails instead of looping."""

        def handler(request):
            link = f'<{request.url}>; rel="next"'
            return _json(request, [_project(1, "parent/a")], {"Link": link})

        provider = GitLab(namespace="parent", url=GITLAB_URL, client=_client(handler))

        with pytest.raises(ListingError, match="loop"):
            provider.list_repositories()


class TestListingErrors:
    """Every listing failure surfaces as ListingError."""

    @pytest.mark.parametrize("status", [401, 403])
    def test_authentication_rejected(self, status):
        def handler(request):
            return httpx.Response(status, json={"message": "401 Unauthorized"}, request=request)

        provider = GitLab(
            namespace="parent", url=GITLAB_URL, private_token="glpat-secret",
            client=_client(handler),
        )

        with pytest.raises(ListingError) as exc_info:
            provider.list_repositories()

        assert exc_info.value.status_code == status
        assert "glpat-secret" not in str(exc_info.value)

    def test_server_error(self):
        def handler(request):
            return httpx.Response(502, text="Bad Gateway", request=request)

        provider = GitLab(namespace="parent", url=GITLAB_URL, client=_client(handler))

        with pytest.raises(ListingError, match="502"):
            provider.list_repositories()

    def test_unknown_namespace(self):
        def handler(request):
            return httpx.Response(404, json={"message": "404 Group Not Found"}, request=request)

        provider = GitHub(namespace="nope", url=GITHUB_URL, client=_client(handler))

        with pytest.raises(ListingError, match="not found"):
            provider.list_repositories()

    def test_network_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        provider = GitLab(namespace="parent", url=GITLAB_URL, client=_client(handler))

        with pytest.raises(ListingError, match="connection refused"):
            provider.list_repositories()

    def test_non_json_body(self):
        def handler(request):
            return httpx.Response(200, text="<html>maintenance</html>", request=request)

        provider = GitLab(namespace="parent", url=GITLAB_URL, client=_client(handler))

        with pytest.raises(ListingError, match="Malformed"):
            provider.list_repositories()

    def test_object_instead_of_list(self):
        def handler(request):
            return _json(request, {"message": "unexpected"})

        provider = GitLab(namespace="parent", url=GITLAB_URL, client=_client(handler))

        with pytest.raises(ListingError, match="expected a list"):
            provider.list_repositories()

    def test_entry_missing_fields(self):
        def handler(request):
            if request.url.path.endswith("/subgroups"):
                return _json(request, [])
            broken = _project(1, "parent/a")
            del broken["ssh_url_to_repo"]
            return _json(request, [broken])

        provider = GitLab(namespace="parent", url=GITLAB_URL, client=_client(handler))

        with pytest.raises(ListingError, match="ssh_url_to_repo"):
            provider.list_repositories()


class TestGitHubListing:
    """Organization listing."""

    def test_lists_all_pages(self):
        """Repositories from every page are returned, sorted by name."""

        def handler(request):
            assert request.url.path == "/orgs/acme/repos"
            assert request.url.params["type"] == "all"
            if request.url.params.get("page") == "2":
                return _json(request, [_github_repo(2, "alpha")])
            link = f'<{GITHUB_URL}/orgs/acme/repos?type=all&per_page=100&page=2>; rel="next"'
            return _json(request, [_github_repo(1, "zeta")], {"Link": link})

        provider = GitHub(namespace="acme", url=GITHUB_URL, client=_client(handler))
        repos = provider.list_repositories()

        assert [r.name for r in repos] == ["alpha", "zeta"]
        assert all(r.namespace_path == ("acme",) for r in repos)
        assert all(r.http_user == "x-access-token" for r in repos)

    def test_token_header(self):
        """A token is sent as 'Authorization: token ...' next to the API headers."""
        seen = []

        def handler(request):
            seen.append(request.headers)
            return _json(request, [])

        GitHub(
            namespace="acme", url=GITHUB_URL, private_token="ghp_secret",
            client=_client(handler),
        ).list_repositories()

        (headers,) = seen
        assert headers["Authorization"] == "token ghp_secret"
        assert headers["Accept"] == "application/vnd.github+json"
        assert headers["User-Agent"] == DEFAULT_USER_AGENT

    def test_anonymous_access(self):
        seen = []

        def handler(request):
            seen.append(request.headers)
            return _json(request, [])

        GitHub(namespace="acme", url=GITHUB_URL, client=_client(handler)).list_repositories()

        assert "Authorization" not in seen[0]

    def test_provider_flags(self):
        provider = GitHub(namespace="acme")
        assert provider.name == "github"
        assert provider.url == "https://api.github.com"
        assert provider.http_requires_credential is False


class TestCreateProvider:
    """Provider selection by name."""

    def test_case_insensitive(self):
        assert isinstance(create_provider("GitLab", namespace="g"), GitLab)
        assert isinstance(create_provider("github", namespace="o"), GitHub)

    def test_custom_url_and_token(self):
        provider = create_provider(
            "gitlab", namespace="g", url="https://git.internal/", private_token="t"
        )
        assert provider.url == "https://git.internal"
        assert provider.private_token == "t"

    def test_unknown_provider(self):
        with pytest.raises(ValueError, match="Unknown provider"):
            create_provider("bitbucket", namespace="g")

    def test_repr_hides_token(self):
        provider = create_provider("gitlab", namespace="g", private_token="glpat-secret")
        assert "glpat-secret" not in repr(provider)
