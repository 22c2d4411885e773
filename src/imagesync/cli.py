"""Main CLI entry point for imagesync."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import click
from click.core import ParameterSource

from . import __version__
from .config import FailurePolicy, SyncConfig
from .errors import ImageSyncError
from .report import SyncStatus
from .sync import run_sync

# CLI option name -> SyncConfig field
CONFIG_OPTIONS = {
    "src_strict_tls": "source_strict_tls",
    "dest_strict_tls": "destination_strict_tls",
    "tags_pattern": "tags_include_pattern",
    "skip_tags_pattern": "tags_exclude_pattern",
    "skip_tags": "skip_tags",
    "overwrite": "overwrite",
    "max_concurrent_tags": "max_concurrent_tags",
}


def _explicit_options(ctx: click.Context) -> Dict[str, Any]:
    """Options the user actually passed, so they can override a config file."""
    options = {}
    for param, field in CONFIG_OPTIONS.items():
        if ctx.get_parameter_source(param) is not ParameterSource.DEFAULT:
            options[field] = ctx.params[param]
    if ctx.params["fail_fast"]:
        options["failure_policy"] = FailurePolicy.FAIL_FAST
    return options


def _load_config(ctx: click.Context, config_path: Optional[Path]) -> SyncConfig:
    overrides = _explicit_options(ctx)
    if config_path is not None:
        return SyncConfig.from_yaml(config_path, **overrides)
    defaults = {field: ctx.params[param] for param, field in CONFIG_OPTIONS.items()}
    defaults.update(overrides)
    return SyncConfig.build(defaults)


@click.command()
@click.option("-s", "--src", required=True, help="Reference for the source container image/repository.")
@click.option("--src-strict-tls", is_flag=True, help="Enable strict TLS for connections to source container registry.")
@click.option("-d", "--dest", required=True, help="Reference for the destination container repository.")
@click.option("--dest-strict-tls", is_flag=True, help="Enable strict TLS for connections to destination container registry.")
@click.option("--tags-pattern", help="Regex pattern to select tags for syncing.")
@click.option("--skip-tags-pattern", help="Regex pattern to exclude tags.")
@click.option("--skip-tags", default="", help="Comma separated list of tags to be skipped.")
@click.option("--overwrite", is_flag=True, help="Use this to copy/override all the tags.")
@click.option(
    "--max-concurrent-tags",
    type=int,
    default=1,
    show_default=True,
    help="Maximum number of tags to be synced/copied in parallel.",
)
@click.option("--fail-fast", is_flag=True, help="Stop syncing a repository at the first failing tag.")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML file with default sync options.",
)
@click.option(
    "--report",
    "report_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Write a JSON report of the run to this file.",
)
@click.option("-v", "--verbose", is_flag=True, help="Show detailed output.")
@click.version_option(__version__)
@click.pass_context
def cli(ctx, src, dest, config_path, report_path, verbose, **_options):
    """Sync container images in registries.

    The source may be an OCI layout directory, an OCI or docker archive,
    a tagged image or a whole repository.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
    )

    try:
        config = _load_config(ctx, config_path)
        report = run_sync(src, dest, config)
    except ImageSyncError as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        ctx.exit(1)

    if report_path is not None:
        click.echo(f"Report saved to: {report.save(report_path)}")

    if report.status is SyncStatus.ALREADY_SYNCED:
        click.secho("Nothing to do, destination is already in sync.", fg="green")
    elif report.status is SyncStatus.PARTIAL:
        click.secho(
            f"Sync finished with failures for tags: {', '.join(sorted(report.failed_tags))}",
            fg="yellow",
        )
    else:
        click.secho("Sync complete!", fg="green")


if __name__ == "__main__":
    cli()
