"""Two-stage pipeline pushing grouped publications into Elements.

The mint stage resolves each group's OAP identifier (minting when needed)
and the import stage PUTs the export record and links users. Each runs in
its own thread, connected by bounded queues so a slow remote side throttles
minting. A fatal error in either stage stops both and is re-raised from
``SyncPipeline.run``.
"""

import queue
import threading
from collections.abc import Iterable
from dataclasses import asdict, dataclass
from typing import Any

from oapsync.audit.logger import AuditLogger
from oapsync.grouping import GroupingContext, is_compatible
from oapsync.identity import IdentityResolver
from oapsync.models import TYPE_ID_TO_NAME, DataError, OAPub, RawItem
from oapsync.parse.elements import native_to_raw_item
from oapsync.store.associations import AssociationStore
from oapsync.sync.elements import ElementsClient
from oapsync.sync.records import (
    PutOutcome,
    build_import_record,
    build_relationship,
    parse_put_response,
    record_hash,
    select_best_record,
)
from oapsync.utils import get_iso_timestamp

__all__ = ["SyncStats", "MintedGroup", "SyncPipeline"]

# Marks the end of work on a queue
_END = object()

# How often blocked queue calls re-check for an abort
_POLL_SECONDS = 0.1


@dataclass
class SyncStats:
    """Counters collected by one pipeline run."""

    groups: int = 0
    minted: int = 0
    reused: int = 0
    put: int = 0
    skipped: int = 0
    relationships: int = 0
    joined: int = 0
    incompatible_joins: int = 0

    def to_dict(self) -> dict[str, int]:
        """Convert to dictionary."""
        return asdict(self)


@dataclass(frozen=True)
class MintedGroup:
    """A group whose OAP identifier is known, ready for import."""

    pub: OAPub
    best: RawItem
    oap_id: str


class SyncPipeline:
    """Mint-then-import pipeline over a sequence of groups.

    Parameters
    ----------
    resolver : IdentityResolver
        Finds or mints OAP identifiers.
    associations : AssociationStore
        Sync state, join flags and publication IDs.
    client : ElementsClient
        Remote API client.
    force : bool, optional
        PUT every record even when its hash is unchanged.
    queue_size : int, optional
        Capacity of each inter-stage queue.
    logger : AuditLogger | None, optional
        Receives per-group events.

    Examples
    --------
    >>> pipeline = SyncPipeline(resolver, associations, client)  # doctest: +SKIP
    >>> stats = pipeline.run(groups)  # doctest: +SKIP
    >>> stats.put, stats.skipped  # doctest: +SKIP
    (12, 340)
    """

    def __init__(
        self,
        resolver: IdentityResolver,
        associations: AssociationStore,
        client: ElementsClient,
        *,
        force: bool = False,
        queue_size: int = 100,
        logger: AuditLogger | None = None,
    ) -> None:
        if queue_size < 1:
            raise ValueError(f"queue_size must be >= 1, got {queue_size}")
        self.resolver = resolver
        self.associations = associations
        self.client = client
        self.force = force
        self.queue_size = queue_size
        self.logger = logger

        self.stats = SyncStats()
        self._abort = threading.Event()
        self._error: BaseException | None = None
        self._error_lock = threading.Lock()

    def run(self, groups: Iterable[OAPub]) -> SyncStats:
        """Push every group through both stages.

        Parameters
        ----------
        groups : Iterable[OAPub]
            Groups to sync, in order.

        Returns
        -------
        SyncStats
            Counters for this run.

        Raises
        ------
        MintError
            If minting fails.
        RemoteError
            If Elements rejects a call or retries run out.
        """
        self.stats = SyncStats()
        self._abort.clear()
        self._error = None

        mint_queue: queue.Queue[Any] = queue.Queue(maxsize=self.queue_size)
        import_queue: queue.Queue[Any] = queue.Queue(maxsize=self.queue_size)

        workers = [
            self._start_worker("oap-mint", self._mint_loop, mint_queue, import_queue),
            self._start_worker("oap-import", self._import_loop, import_queue),
        ]

        for pub in groups:
            if not self._put(mint_queue, pub):
                break
            self.stats.groups += 1
        self._put(mint_queue, _END)

        for worker in workers:
            worker.join()

        if self._error is not None:
            raise self._error
        return self.stats

    # ------------------------------------------------------------------
    # Thread plumbing
    # ------------------------------------------------------------------

    def _start_worker(self, name: str, loop: Any, *queues: queue.Queue[Any]) -> threading.Thread:
        def target() -> None:
            try:
                loop(*queues)
            except Exception as e:
                with self._error_lock:
                    if self._error is None:
                        self._error = e
                self._abort.set()

        thread = threading.Thread(target=target, name=name, daemon=True)
        thread.start()
        return thread

    def _put(self, q: queue.Queue[Any], item: Any) -> bool:
        while not self._abort.is_set():
            try:
                q.put(item, timeout=_POLL_SECONDS)
                return True
            except queue.Full:
                continue
        return False

    def _get(self, q: queue.Queue[Any]) -> Any:
        while not self._abort.is_set():
            try:
                return q.get(timeout=_POLL_SECONDS)
            except queue.Empty:
                continue
        return _END

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _mint_loop(self, mint_queue: queue.Queue[Any], import_queue: queue.Queue[Any]) -> None:
        while (pub := self._get(mint_queue)) is not _END:
            if not self._put(import_queue, self.mint_group(pub)):
                return
        self._put(import_queue, _END)

    def _import_loop(self, import_queue: queue.Queue[Any]) -> None:
        while (group := self._get(import_queue)) is not _END:
            self.import_group(group)

    def mint_group(self, pub: OAPub) -> MintedGroup:
        """Resolve a group's OAP identifier and pick its best record."""
        best = select_best_record(pub.items)
        resolution = self.resolver.resolve(pub, representative=best)
        if resolution.minted:
            self.stats.minted += 1
        else:
            self.stats.reused += 1
        return MintedGroup(pub=pub, best=best, oap_id=resolution.oap_id)

    def import_group(self, group: MintedGroup) -> None:
        """PUT a group's record if it changed and link any new users.

        Parameters
        ----------
        group : MintedGroup
            Group with its resolved OAP identifier.

        Raises
        ------
        RemoteError
            If a remote call fails fatally.
        """
        oap_id = group.oap_id
        body = build_import_record(group.best, group.pub.all_ids())
        content_hash = record_hash(body)
        state = self.associations.sync_state(oap_id)
        linked = set(state.users) if state is not None else set()

        if not self.force and state is not None and state.content_hash == content_hash:
            self.stats.skipped += 1
            if self.logger:
                self.logger.event("record_unchanged", data={"hash": content_hash}, level="DEBUG", rid=oap_id)
        else:
            response = self.client.put_record(oap_id, body)
            self.stats.put += 1
            self.associations.record_sync(oap_id, content_hash, linked)
            outcome = parse_put_response(response, self.client.source)
            if outcome.pub_id is not None:
                self.associations.set_pub_id(oap_id, outcome.pub_id)
            if self.logger:
                self.logger.event(
                    "record_put",
                    data={"pub_id": outcome.pub_id, "hash": content_hash, "joined": outcome.is_joined},
                    rid=oap_id,
                )
            self._record_join(group, outcome)

        for user_id in sorted(group.pub.user_ids - linked):
            self.client.post_relationship(build_relationship(self.client.source, oap_id, user_id), rid=oap_id)
            linked.add(user_id)
            self.associations.record_sync(oap_id, content_hash, linked)
            self.stats.relationships += 1
            if self.logger:
                self.logger.event("relationship_posted", data={"user_id": user_id}, rid=oap_id)

    # ------------------------------------------------------------------
    # Join diagnostics
    # ------------------------------------------------------------------

    def _record_join(self, group: MintedGroup, outcome: PutOutcome) -> None:
        if not outcome.is_joined:
            self.associations.set_flags(group.oap_id, is_joined=False, is_compatible=True)
            return

        self.stats.joined += 1
        compatible = is_join_compatible(group, outcome)
        self.associations.set_flags(group.oap_id, is_joined=True, is_compatible=compatible)
        if not compatible:
            self.stats.incompatible_joins += 1
            if self.logger:
                self.logger.warn(
                    "remote_join_incompatible",
                    data={
                        "pub_id": outcome.pub_id,
                        "joined_sources": list(outcome.joined_sources),
                        "title": group.best.title,
                    },
                    rid=group.oap_id,
                )


def _joined_type_name(outcome: PutOutcome, fallback: str) -> str:
    type_name = outcome.type_name or fallback
    if type_name.isdigit():
        return TYPE_ID_TO_NAME.get(int(type_name), type_name)
    return type_name


def is_join_compatible(group: MintedGroup, outcome: PutOutcome) -> bool:
    """Check whether the record Elements joined ours to looks like the same work.

    The joined record must share the group's document key and pass the
    grouping compatibility test against the group's members. A joined record
    that cannot be parsed counts as incompatible.
    """
    if outcome.joined_native is None:
        return True
    try:
        joined = native_to_raw_item(
            outcome.joined_native,
            _joined_type_name(outcome, group.best.type_name),
            get_iso_timestamp(),
        )
    except DataError:
        return False
    if joined.doc_key != group.best.doc_key:
        return False
    return is_compatible(group.pub.items, joined, GroupingContext())
