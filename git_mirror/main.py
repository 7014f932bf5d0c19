"""
Git Mirror — CLI Entry Point

Usage:
    git-mirror mirror --group my-group [--provider github] [--dry-run] [-c 4] [-vv]
    git-mirror list --group my-group [--json]

Every option can also be set in the environment (or a .env file):
PRIVATE_TOKEN for the API token, GIT_MIRROR_<COMMAND>_<OPTION> for the rest
(e.g. GIT_MIRROR_MIRROR_WORKER_COUNT=4).
"""

from __future__ import annotations

# Load .env file FIRST, before anything reads the environment
from pathlib import Path
from dotenv import load_dotenv

load_dotenv(Path.cwd() / ".env")

import json
from typing import Any, Callable, Optional, Tuple

import click

from . import __version__
from .config.options import MirrorOptions
from .errors import ListingError
from .logging_config import setup_logging
from .mirror.manager import EXIT_FATAL, MirrorManager
from .providers import DEFAULT_USER_AGENT, PROVIDERS, Provider, create_provider


def provider_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Options shared by every command that talks to a provider."""
    options = [
        click.option(
            "--provider", "-p",
            type=click.Choice(sorted(PROVIDERS), case_sensitive=False),
            default="gitlab",
            show_default=True,
            help="Provider to use for fetching repositories",
        ),
        click.option(
            "--url", "-u",
            default=None,
            help="URL of the instance (default: https://gitlab.com or https://api.github.com)",
        ),
        click.option(
            "--group", "-g",
            required=True,
            help="Group (GitLab) or organization (GitHub) to mirror",
        ),
        click.option(
            "--private-token",
            envvar="PRIVATE_TOKEN",
            default=None,
            help="Private token or personal access token for the API",
        ),
        click.option("-v", "--verbose", count=True, help="Verbosity level (repeat for more)"),
        click.option(
            "--log-format",
            type=click.Choice(["text", "json"]),
            default=None,
            help="Log output format (default: LOG_FORMAT or text)",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _build_provider(provider: str, url: Optional[str], group: str, private_token: Optional[str]) -> Provider:
    return create_provider(
        provider,
        namespace=group,
        url=url,
        private_token=private_token,
        user_agent=DEFAULT_USER_AGENT,
    )


@click.group(context_settings={"auto_envvar_prefix": "GIT_MIRROR"})
@click.version_option(__version__, prog_name="git-mirror")
def cli() -> None:
    """Git Mirror — Keep local mirrors of every repository in a group."""


@cli.command()
@provider_options
@click.option(
    "--mirror-dir", "-m",
    type=click.Path(file_okay=False, path_type=Path),
    default=Path("./mirror-dir"),
    show_default=True,
    help="Directory where the local mirrors are stored",
)
@click.option("--http", "use_http", is_flag=True, help="Use HTTPS instead of SSH to sync repositories")
@click.option("--dry-run", is_flag=True, help="Only print what to do without running any git commands")
@click.option(
    "--worker-count", "-c",
    type=int,
    default=1,
    show_default=True,
    help="Number of concurrent mirror jobs",
)
@click.option(
    "--metric-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Where to write metrics for node exporter's textfile collector",
)
@click.option(
    "--junit-report",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Where to write the JUnit XML report",
)
@click.option("--git-executable", default="git", show_default=True, help="Git executable to use")
@click.option(
    "--refspec",
    multiple=True,
    help="Refspec to fetch instead of mirroring all refs (repeatable)",
)
@click.option(
    "--remove-workrepo",
    is_flag=True,
    help="Remove the local mirror after syncing. Requires a full re-clone on the next run.",
)
@click.pass_context
def mirror(
    ctx: click.Context,
    provider: str,
    url: Optional[str],
    group: str,
    private_token: Optional[str],
    verbose: int,
    log_format: Optional[str],
    mirror_dir: Path,
    use_http: bool,
    dry_run: bool,
    worker_count: int,
    metric_file: Optional[Path],
    junit_report: Optional[Path],
    git_executable: str,
    refspec: Tuple[str, ...],
    remove_workrepo: bool,
) -> None:
    """Mirror every repository of a group or organization."""
    setup_logging(format_type=log_format, verbosity=verbose, secrets=[private_token])

    options = MirrorOptions(
        mirror_root=mirror_dir,
        use_http=use_http,
        credential=private_token,
        worker_count=worker_count,
        dry_run=dry_run,
        default_refspec=refspec or None,
        remove_local_copy_after_sync=remove_workrepo,
        metrics_sink_path=metric_file,
        report_sink_path=junit_report,
        vcs_executable=git_executable,
    )
    manager = MirrorManager(_build_provider(provider, url, group, private_token), options)
    result = manager.run()

    if result.error:
        click.echo(f"❌ Error occurred: {result.error}", err=True)
    else:
        icon = "✅" if result.success else "❌"
        click.echo(
            f"{icon} {result.succeeded}/{result.total} repositories mirrored, "
            f"{result.failed} failed, {result.skipped} skipped"
        )
        for outcome in result.outcomes:
            if outcome.failed:
                click.echo(f"  ✗ {outcome.descriptor.full_path}: {outcome.error}", err=True)

    for message in result.reporting_errors:
        click.echo(f"⚠️  {message}", err=True)

    ctx.exit(result.exit_code)


@cli.command("list")
@provider_options
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def list_repositories(
    ctx: click.Context,
    provider: str,
    url: Optional[str],
    group: str,
    private_token: Optional[str],
    verbose: int,
    log_format: Optional[str],
    as_json: bool,
) -> None:
    """List the repositories a mirror run would sync."""
    setup_logging(format_type=log_format, verbosity=verbose, secrets=[private_token])

    try:
        descriptors = _build_provider(provider, url, group, private_token).list_repositories()
    except ListingError as e:
        click.echo(f"❌ Listing failed: {e}", err=True)
        ctx.exit(EXIT_FATAL)

    if as_json:
        payload = [
            {
                "path": d.full_path,
                "namespace_path": list(d.namespace_path),
                "name": d.name,
                "ssh_url": d.ssh_url,
                "http_url": d.http_url,
            }
            for d in descriptors
        ]
        click.echo(json.dumps(payload, indent=2))
        return

    for descriptor in descriptors:
        click.echo(descriptor.full_path)


def main() -> None:
    cli(prog_name="git-mirror")


if __name__ == "__main__":
    main()
