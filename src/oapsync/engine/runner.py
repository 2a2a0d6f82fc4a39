"""End-to-end sync runner.

Chains the stages of a sync run under one audited ``RunContext``:

    users   Update the user directory from a users feed (optional)
    ingest  Stream feeds into the raw item store (optional)
    group   Group every stored item into OA publications
    sync    Mint or reuse OAP identifiers and push records to Elements

Only groups with at least one matched user are synced unless
``SyncConfig.sync_all_groups`` is set.
"""

from collections import Counter
from collections.abc import Iterable, Sequence
from pathlib import Path

from oapsync.audit import AuditLogger, RunContext
from oapsync.engine.config import ConfigError, SyncConfig, SyncResult, load_credentials
from oapsync.grouping import GroupingContext, group_items
from oapsync.identity import EzidClient, IdentityResolver, Minter
from oapsync.models import OAPub
from oapsync.parse import iter_feed_items, iter_user_entries
from oapsync.store import AssociationStore, OapDatabase, RawItemStore, UserDirectory
from oapsync.sync import ElementsClient, SyncPipeline

__all__ = [
    "run_sync",
    "ingest_feeds",
    "update_user_directory",
    "build_groups",
    "create_minter",
    "create_elements_client",
]


# ---------------------------------------------------------------------------
# Stage functions
# ---------------------------------------------------------------------------


def update_user_directory(
    users_feed: Path,
    db: OapDatabase,
    logger: AuditLogger | None = None,
) -> Counter[str]:
    """Apply a users feed to the user directory."""
    directory = UserDirectory(db, logger)
    return directory.update(iter_user_entries(users_feed, logger))


def ingest_feeds(
    feeds: Iterable[Path],
    db: OapDatabase,
    logger: AuditLogger | None = None,
) -> Counter[str]:
    """Stream feed files into the raw item store.

    Returns
    -------
    Counter[str]
        Store outcomes (inserted, replaced, merged, unchanged, skipped)
        summed over all feeds.
    """
    store = RawItemStore(db, logger)
    totals: Counter[str] = Counter()
    for feed in feeds:
        counts = store.add_all(iter_feed_items(feed, logger))
        if logger:
            logger.event("feed_ingested", data={"path": str(feed), "counts": dict(counts)})
        totals.update(counts)
    return totals


def build_groups(db: OapDatabase, logger: AuditLogger | None = None) -> list[OAPub]:
    """Group every stored raw item, attaching known users."""
    context = GroupingContext(user_directory=UserDirectory(db).snapshot(), logger=logger)
    context.add_items(RawItemStore(db).iter_items())
    return group_items(context)


def create_minter(config: SyncConfig, netrc_path: Path | None = None) -> Minter:
    """Build an EZID client with credentials from netrc."""
    username, password = load_credentials(config.ezid_url, netrc_path)
    return EzidClient(
        username,
        password,
        shoulder=config.ezid_shoulder,
        base_url=config.ezid_url,
        timeout_seconds=config.timeout_seconds,
    )


def create_elements_client(
    config: SyncConfig,
    logger: AuditLogger | None = None,
    netrc_path: Path | None = None,
) -> ElementsClient:
    """Build an Elements client with credentials from netrc.

    Raises
    ------
    ConfigError
        If no API URL is configured or credentials are missing.
    """
    if not config.elements_api_url:
        raise ConfigError("elements_api_url is required to sync")
    username, password = load_credentials(config.elements_api_url, netrc_path)
    return ElementsClient(
        config.elements_api_url,
        username,
        password,
        source=config.elements_source,
        max_attempts=config.max_attempts,
        retry_delay_seconds=config.retry_delay_seconds,
        timeout_seconds=config.timeout_seconds,
        logger=logger,
    )


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------


def run_sync(
    config: SyncConfig,
    feeds: Sequence[Path | str] = (),
    *,
    users_feed: Path | str | None = None,
    minter: Minter | None = None,
    client: ElementsClient | None = None,
    argv: list[str] | None = None,
    echo_level: str | None = None,
) -> SyncResult:
    """Run users update, ingestion, grouping and sync as one audited run.

    Parameters
    ----------
    config : SyncConfig
        Run configuration.
    feeds : Sequence[Path | str], optional
        Feeds to ingest before grouping.
    users_feed : Path | str | None, optional
        Users feed applied to the directory before grouping.
    minter : Minter | None, optional
        Identifier minter; built from config and netrc if None.
    client : ElementsClient | None, optional
        Elements client; built from config and netrc if None.
    argv : list[str] | None, optional
        Command line recorded in the run summary.
    echo_level : str | None, optional
        Lowest event level echoed to the console.

    Returns
    -------
    SyncResult
        Run results; ``success`` is False and ``error_message`` set when a
        fatal error stopped the run.

    Examples
    --------
        >>> from oapsync.engine import SyncConfig, run_sync
        >>> config = SyncConfig(db_path="oap.db", elements_api_url="https://elements.example.edu/api")
        >>> result = run_sync(config, ["feeds/eschol.xml.gz"])  # doctest: +SKIP
        >>> result.counters["put"]  # doctest: +SKIP
        42
    """
    feed_paths = [Path(feed) for feed in feeds]
    for path in feed_paths:
        if not path.exists():
            return SyncResult(success=False, error_message=f"Feed does not exist: {path}")

    run = RunContext.start(
        config.output_dir,
        parameters={**config.to_dict(), "feeds": [str(p) for p in feed_paths]},
        command_argv=argv,
        echo_level=echo_level,
    )
    logger = run.audit_logger
    result = SyncResult(
        success=False,
        run_id=run.run_id,
        output_files={
            "events": str(config.output_dir / "events.jsonl"),
            "run_summary": str(config.output_dir / "run.json"),
        },
    )

    try:
        with OapDatabase(config.db_path) as db:
            if users_feed is not None:
                run.start_stage("users")
                user_counts = update_user_directory(Path(users_feed), db, logger)
                run.finish_stage("users", counters=dict(user_counts))

            if feed_paths:
                run.start_stage("ingest")
                counts = ingest_feeds(feed_paths, db, logger)
                result.items_ingested = sum(counts.values())
                run.finish_stage("ingest", counters=dict(counts))

            run.start_stage("group")
            pubs = build_groups(db, logger)
            result.items_total = sum(len(pub) for pub in pubs)
            result.groups_total = len(pubs)
            if not config.sync_all_groups:
                pubs = [pub for pub in pubs if pub.user_ids]
            result.groups_synced = len(pubs)
            run.finish_stage(
                "group",
                counters={
                    "items": result.items_total,
                    "groups": result.groups_total,
                    "groups_to_sync": result.groups_synced,
                },
            )

            run.start_stage("sync", expected_items=len(pubs))
            associations = AssociationStore(db)
            resolver = IdentityResolver(associations, minter or create_minter(config), logger)
            pipeline = SyncPipeline(
                resolver,
                associations,
                client or create_elements_client(config, logger),
                force=config.force,
                queue_size=config.queue_size,
                logger=logger,
            )
            stats = pipeline.run(pubs)
            result.counters = stats.to_dict()
            run.finish_stage("sync", counters=result.counters)

    except Exception as e:
        run.record_error(e, stage=logger.current_stage)
        run.finish(status="failed", counters=result.counters)
        result.error_message = f"{type(e).__name__}: {e}"
        return result

    run.finish(status="success", counters=result.counters)
    result.success = True
    return result
