"""Invoke tasks for ShowTracker application management."""

import sys
from pathlib import Path

from invoke import task
from invoke.context import Context


@task
def start(ctx: Context, host: str = "0.0.0.0", port: int = 8000, reload: bool = False) -> None:
    """Start the ShowTracker FastAPI server.

    Args:
        ctx: Invoke context
        host: Host to bind to (default: 0.0.0.0)
        port: Port to bind to (default: 8000)
        reload: Enable auto-reload for development
    """
    cmd = f"uv run uvicorn showtracker.main:app --host {host} --port {port}"
    if reload:
        cmd += " --reload"

    try:
        ctx.run(cmd, pty=True)
    except KeyboardInterrupt:
        print("\nServer stopped")
        sys.exit(0)


@task(name="import")
def import_file(
    ctx: Context,
    path: str,
    dry_run: bool = False,
    no_setlists: bool = False,
    skip_duplicates: bool = False,
) -> None:
    """Import a CSV or XLSX concert history file.

    Args:
        ctx: Invoke context
        path: Spreadsheet to import
        dry_run: Show the preview only
        no_setlists: Skip setlist.fm matching
        skip_duplicates: Leave out rows already in the collection
    """
    cmd = f"uv run showtracker-import {path}"
    if dry_run:
        cmd += " --dry-run"
    if no_setlists:
        cmd += " --no-setlists"
    if skip_duplicates:
        cmd += " --skip-duplicates"
    ctx.run(cmd, pty=True)


@task
def logs(ctx: Context, follow: bool = False, lines: int = 50) -> None:
    """View the ShowTracker log file.

    Args:
        ctx: Invoke context
        follow: Follow log output (like tail -f)
        lines: Number of lines to show (default: 50)
    """
    log_file = Path("data/logs/showtracker.log")
    if not log_file.exists():
        print("No log file found. Enable storage.log_to_file in config.toml.")
        return

    if follow:
        ctx.run(f"tail -f {log_file}", pty=True)
    else:
        ctx.run(f"tail -n {lines} {log_file}")


@task
def test(ctx: Context, verbose: bool = False, coverage: bool = False) -> None:
    """Run the test suite.

    Args:
        ctx: Invoke context
        verbose: Enable verbose output
        coverage: Run with coverage report
    """
    cmd = "uv run pytest"
    if verbose:
        cmd += " -v"
    if coverage:
        cmd += " --cov=showtracker --cov-report=term-missing"
    ctx.run(cmd, pty=True)


@task
def clean(ctx: Context) -> None:
    """Clean up temporary files."""
    for pattern in ["__pycache__", "*.pyc", "*.pyo", ".pytest_cache"]:
        ctx.run(f"find . -name '{pattern}' -exec rm -rf {{}} + 2>/dev/null || true", warn=True)

    for path in ["build", "dist", "*.egg-info", ".eggs"]:
        ctx.run(f"rm -rf {path} 2>/dev/null || true", warn=True)

    print("Cleanup complete")
