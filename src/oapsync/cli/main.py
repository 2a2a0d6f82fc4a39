"""Command-line interface for oapsync.

Provides CLI commands for ingesting feeds, grouping, syncing and lookup.
"""

import importlib.metadata
import sys
from pathlib import Path

import click

__all__ = ["cli"]

try:
    __version__ = importlib.metadata.version("oapsync")
except importlib.metadata.PackageNotFoundError:
    __version__ = "0.1.0"  # Fallback for development

_DB_OPTION = click.option(
    "--db",
    "db_path",
    type=click.Path(dir_okay=False),
    default="oap.db",
    show_default=True,
    help="SQLite database path",
)

_VERBOSE_OPTION = click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose output",
)


@click.group()
@click.version_option(version=__version__, prog_name="oapsync")
def cli() -> None:
    """Group harvested publications and sync them into Elements.

    Use 'oapsync COMMAND --help' for command-specific help.
    """


@cli.command()
@click.argument("feeds", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@_DB_OPTION
@_VERBOSE_OPTION
def ingest(feeds: tuple[str, ...], db_path: str, verbose: bool) -> None:
    """Add the items of one or more FEEDS to the database.

    Feeds may be gzip-compressed. A newer version of an item replaces the
    stored one; otherwise the stored item only picks up missing author
    emails.

    Examples
    --------
        oapsync ingest eschol.xml.gz ucla.xml.gz --db oap.db
    """
    from oapsync import ingest as ingest_feeds

    try:
        if verbose:
            for feed in feeds:
                click.echo(f"Ingesting: {feed}", err=True)

        counts = ingest_feeds(list(feeds), db_path)

        if verbose:
            for outcome, count in sorted(counts.items()):
                click.echo(f"  {outcome}: {count}", err=True)

        click.secho(f"✓ Processed {sum(counts.values())} items into {db_path}", fg="green")

    except Exception as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        sys.exit(1)


@cli.command("update-users")
@click.argument("users_feed", type=click.Path(exists=True, dir_okay=False))
@_DB_OPTION
def update_users(users_feed: str, db_path: str) -> None:
    """Load user emails and proprietary IDs from USERS_FEED.

    Examples
    --------
        oapsync update-users users.xml --db oap.db
    """
    from oapsync import update_users as apply_users

    try:
        counts = apply_users(users_feed, db_path)
        click.secho(
            f"✓ Users: {counts.get('inserted', 0)} new, "
            f"{counts.get('updated', 0)} changed, {counts.get('unchanged', 0)} unchanged",
            fg="green",
        )

    except Exception as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        sys.exit(1)


@cli.command()
@_DB_OPTION
@click.option(
    "--output",
    "-o",
    type=click.Path(),
    required=True,
    help="Output JSONL file path",
)
@_VERBOSE_OPTION
def group(db_path: str, output: str, verbose: bool) -> None:
    """Group stored items and write the groups as JSONL.

    Examples
    --------
        oapsync group --db oap.db -o groups.jsonl
    """
    from oapsync import group as build_groups
    from oapsync import write_groups_jsonl

    try:
        pubs = build_groups(db_path)

        if verbose:
            click.echo(f"Items: {sum(len(pub) for pub in pubs)}", err=True)
            click.echo(f"Multi-item groups: {sum(1 for pub in pubs if len(pub) > 1)}", err=True)
            click.echo(f"Groups with users: {sum(1 for pub in pubs if pub.user_ids)}", err=True)

        write_groups_jsonl(pubs, output)

        click.secho(f"✓ Successfully wrote {len(pubs)} groups to {output}", fg="green")

    except Exception as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        sys.exit(1)


@cli.command()
@click.argument("feeds", nargs=-1, type=click.Path(exists=True, dir_okay=False))
@_DB_OPTION
@click.option(
    "--api-url",
    envvar="OAPSYNC_ELEMENTS_API_URL",
    required=True,
    help="Elements API root URL (env: OAPSYNC_ELEMENTS_API_URL)",
)
@click.option("--source", default="c-inst-1", show_default=True, help="Elements data source name")
@click.option(
    "--users",
    "users_feed",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Users feed to apply before grouping",
)
@click.option(
    "--output-dir",
    "-o",
    type=click.Path(),
    default="out",
    help="Output directory for the run log and summary (default: out)",
)
@click.option("--force", is_flag=True, help="PUT every record even when unchanged")
@click.option("--all-groups", is_flag=True, help="Sync groups without a matched user too")
@click.option("--max-attempts", type=int, default=5, show_default=True, help="Attempts on 409/504")
@click.option("--retry-delay", type=float, default=10.0, show_default=True, help="Seconds between attempts")
@_VERBOSE_OPTION
def sync(
    feeds: tuple[str, ...],
    db_path: str,
    api_url: str,
    source: str,
    users_feed: str | None,
    output_dir: str,
    force: bool,
    all_groups: bool,
    max_attempts: int,
    retry_delay: float,
    verbose: bool,
) -> None:
    """Ingest FEEDS (optional), group, and push OA publications to Elements.

    Credentials for Elements and EZID are read from ~/.netrc. Records
    whose content is unchanged since the last run are skipped unless
    --force is given.

    Examples
    --------
        oapsync sync --db oap.db --api-url https://elements.example.edu:8002/elements-secure-api
        oapsync sync eschol.xml.gz --users users.xml --force
    """
    from oapsync.engine import SyncConfig, run_sync

    try:
        config = SyncConfig(
            db_path=Path(db_path),
            output_dir=Path(output_dir),
            elements_api_url=api_url,
            elements_source=source,
            force=force,
            max_attempts=max_attempts,
            retry_delay_seconds=retry_delay,
            sync_all_groups=all_groups,
        )

        result = run_sync(
            config,
            [Path(feed) for feed in feeds],
            users_feed=users_feed,
            argv=sys.argv,
            echo_level="INFO" if verbose else "WARN",
        )

        if not result.success:
            click.secho(f"✗ Sync failed: {result.error_message}", fg="red", err=True)
            click.echo(f"  See {result.output_files.get('events', output_dir)}", err=True)
            sys.exit(1)

        counters = result.counters
        click.secho(
            f"✓ Synced {result.groups_synced} of {result.groups_total} groups "
            f"({counters.get('minted', 0)} minted, {counters.get('put', 0)} pushed, "
            f"{counters.get('skipped', 0)} unchanged, {counters.get('relationships', 0)} relationships)",
            fg="green",
        )
        if counters.get("incompatible_joins"):
            click.secho(
                f"  {counters['incompatible_joins']} records joined to an incompatible publication",
                fg="yellow",
            )

    except Exception as e:
        click.secho(f"✗ Error: {e}", fg="red", err=True)
        if verbose:
            import traceback

            click.echo(traceback.format_exc(), err=True)
        sys.exit(1)


@cli.command()
@click.argument("identifiers", nargs=-1, required=True)
@_DB_OPTION
def lookup(identifiers: tuple[str, ...], db_path: str) -> None:
    """Show what is known about one or more IDENTIFIERS.

    An identifier may be an OAP identifier, an Elements publication ID, or
    a source identifier with or without its scheme.

    Examples
    --------
        oapsync lookup ark:/99999/fk4abc --db oap.db
        oapsync lookup c-eschol-id::qt12345678 1234567
    """
    from oapsync import lookup as describe

    try:
        for identifier in identifiers:
            descriptions = describe(identifier, db_path)
            if not descriptions:
                click.secho(f"{identifier}: not found", fg="yellow")
                continue

            for description in descriptions:
                click.secho(f"{identifier} -> {description.oap_id}", bold=True)
                click.echo(f"  Elements pub: {description.pub_id or '(none)'}")
                if description.flags is None:
                    click.echo("  Not pushed")
                elif description.flags.is_joined:
                    compat = "compatible" if description.flags.is_compatible else "INCOMPATIBLE"
                    click.echo(f"  Joined ({compat})")
                else:
                    click.echo("  Not joined")
                if description.sync is not None:
                    users = ", ".join(sorted(description.sync.users)) or "(none)"
                    click.echo(f"  Last pushed: {description.sync.updated}; users: {users}")
                for key, item in description.members:
                    click.echo(f"  {key}")
                    if item is not None:
                        click.echo(f"      {item.title}")
                        click.echo(f"      {item.date or ''}  {'; '.join(item.authors)}")

    except Exception as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        sys.exit(1)


if __name__ == "__main__":
    cli()
