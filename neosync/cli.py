"""CLI interface for neosync."""

import logging
from pathlib import Path
from typing import Any, Optional

import click

from . import __version__
from .api import NeoClient
from .cli_progress import run_download_with_progress, run_push_with_progress
from .config import DEFAULT_PROFILE, config
from .exceptions import NeoAPIError, NeoConfigError, NeoError, NeoWorkingTreeError
from .output import OutputFormatter
from .sync import BackupOrchestrator, SyncAction, SyncEngine, SyncReport, SyncSession
from .utils import DEFAULT_CONCURRENT_TASKS

logger = logging.getLogger(__name__)


def load_session(ctx: Any, out: OutputFormatter) -> SyncSession:
    """Build the session from the selected profile or exit with an error."""
    profile = ctx.obj["profile"]
    try:
        values = config.load_profile(profile)
        return SyncSession.from_profile(
            values,
            profile=profile,
            use_git=not ctx.obj["no_git"],
            api_key=ctx.obj.get("api_key"),
        )
    except NeoConfigError as e:
        out.error(str(e))
        ctx.exit(1)
        raise  # Unreachable, but helps type checker


def _print_failures(out: OutputFormatter, report: SyncReport, verbose: bool) -> None:
    for result in report.failed:
        if verbose and result.detail:
            out.error(f"✗ {result.kind.value} {result.path}: {result.detail}")
        else:
            out.error(f"✗ {result.kind.value} {result.path}")


def _finish(ctx: Any, out: OutputFormatter, report: SyncReport) -> None:
    """Report failed tasks and JSON output, then exit 1 on any failure.

    Task details (server messages) are only shown with ``--verbose``.
    """
    _print_failures(out, report, ctx.obj["verbose"])
    if out.json_output:
        out.output_json(report.to_dict())
    if report.has_failures:
        ctx.exit(1)


def _handle_error(ctx: Any, out: OutputFormatter, e: Exception) -> None:
    logger.debug("Command failed", exc_info=e)
    if isinstance(e, NeoWorkingTreeError):
        out.error(f"Working tree not restored: {e}")
        if e.original_error is not None:
            out.error(f"Operation had failed with: {e.original_error}")
    elif isinstance(e, NeoAPIError):
        out.error(f"API error: {e}")
    else:
        out.error(str(e))
    ctx.exit(1)


@click.group()
@click.option(
    "--profile",
    "-p",
    envvar="NEOSYNC_PROFILE",
    default=DEFAULT_PROFILE,
    show_default=True,
    help="Profile (site) to use",
)
@click.option("--api-key", "-k", envvar="NEOSYNC_API_KEY", help="Neocities API key")
@click.option(
    "--no-git",
    is_flag=True,
    help="Sync the directory as is instead of the committed git files",
)
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(version=__version__, prog_name="neosync")
@click.pass_context
def main(
    ctx: Any,
    profile: str,
    api_key: Optional[str],
    no_git: bool,
    quiet: bool,
    json: bool,
    verbose: bool,
) -> None:
    """neosync - Mirror a local directory or git repository to a Neocities site."""
    ctx.ensure_object(dict)
    ctx.obj["profile"] = profile
    ctx.obj["api_key"] = api_key
    ctx.obj["no_git"] = no_git
    ctx.obj["verbose"] = verbose
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("neosync").setLevel(logging.DEBUG)
        # Request lines from httpx are noise next to our own debug output
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)
    else:
        logging.basicConfig(level=logging.WARNING)


@main.command()
@click.option(
    "--site-directory",
    "-d",
    prompt="Local site directory",
    type=click.Path(file_okay=False),
    help="Directory to mirror",
)
@click.option(
    "--api-key",
    "-k",
    "init_api_key",
    prompt="Neocities API key",
    hide_input=True,
    help="API key of the site",
)
@click.option("--ignore-regex", default="", help="Regex of relative paths to skip")
@click.option(
    "--tasks",
    "-j",
    type=click.IntRange(min=1),
    default=DEFAULT_CONCURRENT_TASKS,
    show_default=True,
    help="Number of concurrent uploads/deletes",
)
@click.pass_context
def init(
    ctx: Any,
    site_directory: str,
    init_api_key: str,
    ignore_regex: str,
    tasks: int,
) -> None:
    """Create or overwrite the selected profile.

    The API key is checked against the site before saving.
    """
    out: OutputFormatter = ctx.obj["out"]
    profile = ctx.obj["profile"]

    values = {
        "site_directory": site_directory,
        "api_key": init_api_key,
        "ignore_regex": ignore_regex,
        "n_concurrent_tasks": str(tasks),
    }
    try:
        SyncSession.from_profile(values, profile=profile)
    except NeoConfigError as e:
        out.error(str(e))
        ctx.exit(1)

    out.info("Validating API key...")
    try:
        with NeoClient(api_key=init_api_key) as client:
            info = client.get_info()
        out.success(f"✓ API key is valid for site '{info.sitename}'")
    except NeoAPIError as e:
        out.error(f"API key validation failed: {e}")
        if not click.confirm("Save profile anyway?", default=False):
            out.warning("Configuration cancelled.")
            ctx.exit(1)

    path = config.save_profile(profile, values)
    out.print_summary(
        "Initialization Complete",
        [
            ("Profile", profile),
            ("Config file", str(path)),
            ("Site directory", site_directory),
        ],
    )


@main.command()
@click.pass_context
def profiles(ctx: Any) -> None:
    """List configured profiles."""
    out: OutputFormatter = ctx.obj["out"]
    names = config.list_profiles()
    if not names and not out.json_output:
        out.info("No profiles configured. Run 'neosync init' to create one.")
        return
    out.print_lines(names)


@main.command()
@click.pass_context
def info(ctx: Any) -> None:
    """Show information about the site of the selected profile."""
    out: OutputFormatter = ctx.obj["out"]
    session = load_session(ctx, out)

    try:
        with NeoClient.from_session(session) as client:
            site = client.get_info()
    except NeoError as e:
        _handle_error(ctx, out, e)
        return

    out.print_summary(
        f"Site {site.sitename}",
        [
            ("Sitename", site.sitename),
            ("URL", f"https://{site.sitename}.{session.host}/"),
            ("Domain", site.domain or "-"),
            ("Hits", site.hits),
            ("Created", site.created_at or "-"),
            ("Last updated", site.last_updated or "-"),
            ("Tags", ", ".join(site.tags) or "-"),
        ],
    )


@main.command()
@click.option(
    "--dry-run", is_flag=True, help="Show what would be pushed without pushing"
)
@click.option("--no-progress", is_flag=True, help="Disable progress bars")
@click.pass_context
def push(ctx: Any, dry_run: bool, no_progress: bool) -> None:
    """Upload changed files and delete removed ones.

    In git mode (the default) only committed, tracked files are pushed;
    uncommitted changes are stashed for the duration of the push and
    restored afterwards.

    Examples:
        neosync push                    # Mirror the default profile
        neosync -p blog push --dry-run  # Preview changes for profile 'blog'
        neosync --no-git push           # Push the directory as is
    """
    out: OutputFormatter = ctx.obj["out"]
    session = load_session(ctx, out)

    try:
        with NeoClient.from_session(session) as client:
            engine = SyncEngine(client, session, out)
            report = run_push_with_progress(
                engine,
                dry_run=dry_run,
                show_progress=not (no_progress or out.quiet or out.json_output),
            )
    except KeyboardInterrupt:
        out.warning("\nPush cancelled by user")
        ctx.exit(130)
        return
    except NeoError as e:
        _handle_error(ctx, out, e)
        return

    _finish(ctx, out, report)


@main.command()
@click.pass_context
def status(ctx: Any) -> None:
    """Show which files a push would upload or delete."""
    out: OutputFormatter = ctx.obj["out"]
    verbose = ctx.obj["verbose"]
    session = load_session(ctx, out)

    try:
        with NeoClient.from_session(session) as client:
            engine = SyncEngine(client, session, out)
            decisions = engine.compare()
    except NeoError as e:
        _handle_error(ctx, out, e)
        return

    changes = [d for d in decisions if d.action != SyncAction.SKIP]
    if out.json_output:
        out.output_json(
            [
                {"path": d.relative_path, "action": d.action.value, "reason": d.reason}
                for d in changes
            ]
        )
        return

    if not changes:
        out.success("Everything is in sync")
        return

    for decision in changes:
        marker = "↑" if decision.action == SyncAction.UPLOAD else "✗"
        line = f"{marker} {decision.relative_path}"
        if verbose:
            line = f"{line}  ({decision.reason})"
        click.echo(line)


@main.command(name="list")
@click.option("--local", "local_", is_flag=True, help="List local files instead")
@click.pass_context
def list_files(ctx: Any, local_: bool) -> None:
    """List the files of the site (or of the local tree with --local)."""
    out: OutputFormatter = ctx.obj["out"]
    session = load_session(ctx, out)

    try:
        with NeoClient.from_session(session) as client:
            engine = SyncEngine(client, session, out)
            if local_:
                # Staged but uncommitted files are not part of the site
                with engine.working_tree_guard():
                    paths = engine.list_local_paths()
            else:
                paths = engine.list_remote_paths()
    except NeoError as e:
        _handle_error(ctx, out, e)
        return

    out.print_lines(paths)


@main.command()
@click.option(
    "--output",
    "-o",
    "output_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory to create the backup folder in (default: current directory)",
)
@click.option("--no-progress", is_flag=True, help="Disable progress bars")
@click.pass_context
def download(ctx: Any, output_dir: Optional[Path], no_progress: bool) -> None:
    """Download the whole site into a new timestamped folder."""
    out: OutputFormatter = ctx.obj["out"]
    session = load_session(ctx, out)

    try:
        with NeoClient.from_session(session) as client:
            orchestrator = BackupOrchestrator(client, session, out)
            report = run_download_with_progress(
                orchestrator,
                output_dir,
                show_progress=not (no_progress or out.quiet or out.json_output),
            )
    except KeyboardInterrupt:
        out.warning("\nDownload cancelled by user")
        ctx.exit(130)
        return
    except NeoError as e:
        _handle_error(ctx, out, e)
        return

    if report.has_failures:
        out.warning(
            f"Downloaded {len(report.succeeded)} file(s), "
            f"{len(report.failed)} failed, into {report.destination}"
        )
    else:
        out.success(f"✓ Downloaded {len(report.succeeded)} file(s) into {report.destination}")
    _finish(ctx, out, report)


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def upload(ctx: Any, file: Path) -> None:
    """Upload a single FILE, bypassing reconciliation.

    The file is uploaded as it is on disk, committed or not.
    """
    out: OutputFormatter = ctx.obj["out"]
    session = load_session(ctx, out)

    try:
        with NeoClient.from_session(session) as client:
            report = SyncEngine(client, session, out).upload(file)
    except NeoError as e:
        _handle_error(ctx, out, e)
        return

    for result in report.succeeded:
        out.success(f"✓ Uploaded {result.path}")
    _finish(ctx, out, report)


@main.command()
@click.argument("file", type=str)
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt")
@click.pass_context
def delete(ctx: Any, file: str, yes: bool) -> None:
    """Delete a single FILE (path relative to the site root) from the site."""
    out: OutputFormatter = ctx.obj["out"]
    session = load_session(ctx, out)

    if (
        not yes
        and not out.quiet
        and not click.confirm(f"Are you sure you want to delete '{file}'?")
    ):
        out.warning("Deletion cancelled.")
        return

    try:
        with NeoClient.from_session(session) as client:
            report = SyncEngine(client, session, out).delete(file)
    except NeoError as e:
        _handle_error(ctx, out, e)
        return

    for result in report.succeeded:
        out.success(f"✓ Deleted {result.path}")
    _finish(ctx, out, report)


if __name__ == "__main__":
    main()
