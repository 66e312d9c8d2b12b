"""
nextep.reconcile - Schedule reconciliation engine

Builds the schedule of latest aired episodes from the watched
configuration, diffs it against the persisted one, applies catch-up
requests to the watched configuration and keeps both files consistent.
"""

import logging
from functools import partial
from typing import Callable, Dict, Iterable, List, Optional

from .errors import CacheReadError, FetchError, InvalidKey
from .models import (
    Action,
    ActionKind,
    Candidate,
    CatchUpResult,
    ProbeReport,
    Resolution,
    ScheduleEntry,
    ShowEntry,
    ShowFailure,
    code_ordinal,
)
from .parser.core import ShowProber
from .schedule import ScheduleStore, sort_key
from .utils import CacheManager, TimeUtils
from .watchlist import WatchedConfig

Clock = Callable[[], int]

# Per-show errors that never abort a batch unless strict
SHOW_ERRORS = (FetchError, CacheReadError)


def compute_delta(
    previous: Dict[str, ScheduleEntry], candidates: Iterable[Candidate]
) -> List[Candidate]:
    """Candidates that are new or whose code or air date moved"""
    delta = []
    for candidate in candidates:
        entry = previous.get(candidate.key)
        if entry is None or entry.code != candidate.code or entry.air_epoch != candidate.air_epoch:
            delta.append(candidate)
    return sorted(delta, key=sort_key)


def reconcile_one(
    show: ShowEntry, entry: ScheduleEntry, resolve: Callable[[], Optional[Resolution]]
) -> Action:
    """
    Decide what happens to one schedule entry after the watched code changed

    Args:
        show: Current watched configuration entry
        entry: Its schedule entry
        resolve: Fresh next-unseen resolution of the show

    Returns:
        KEEP, REMOVE (caught up with the latest aired episode) or UPDATE
    """
    if code_ordinal(entry.code) < code_ordinal(show.watched):
        return Action.keep()

    resolution = resolve()
    if resolution is None:
        return Action.keep()
    watched = code_ordinal(show.watched)
    if watched and code_ordinal(resolution.code) == watched:
        return Action.remove()
    if resolution.code != entry.code or resolution.air_epoch != entry.air_epoch:
        return Action.update(resolution.code, resolution.air_epoch)
    return Action.keep()


class ReconciliationEngine:
    """Keeps the schedule and the watched configuration in step"""

    def __init__(
        self,
        watchlist: WatchedConfig,
        schedule_store: ScheduleStore,
        prober: ShowProber,
        clock: Clock = TimeUtils.today,
        strict: bool = False,
        cache_manager: Optional[CacheManager] = None,
    ):
        self.watchlist = watchlist
        self.schedule_store = schedule_store
        self.prober = prober
        self.clock = clock
        self.strict = strict
        self.cache_manager = cache_manager

    @staticmethod
    def clean_filters(filters: Optional[List[str]]) -> List[str]:
        """Lowercased non-blank filters; an empty result means every show"""
        return [f.strip().lower() for f in filters or [] if f.strip()]

    @staticmethod
    def select(shows: List[ShowEntry], filters: Optional[List[str]]) -> List[ShowEntry]:
        """Shows whose key equals, or whose name contains, one of the filters"""
        wanted = ReconciliationEngine.clean_filters(filters)
        if not wanted:
            return list(shows)
        return [
            show for show in shows
            if any(w == show.key or w in show.name.lower() for w in wanted)
        ]

    def probe(self, filters: Optional[List[str]] = None, persist: bool = True) -> ProbeReport:
        """
        Resolve the latest aired episode of every selected show

        The schedule file is replaced only for full runs; name filters
        (blank ones aside) skip saving. On a full run a show whose fetch
        failed keeps its previous entry rather than being dropped; that
        entry then dates from the show's last successful probe.
        """
        filters = self.clean_filters(filters)
        shows = self.select(self.watchlist.load(), filters)
        previous = self.schedule_store.load()
        today = self.clock()
        report = ProbeReport()

        if len(shows) == 1:
            self.prober.single_target()

        logging.info("Probing %d show(s)", len(shows))
        for index, show in enumerate(shows, 1):
            logging.info("Probing %s (%d/%d)", show.name, index, len(shows))
            try:
                resolution = self.prober.next_unseen(show, today)
            except SHOW_ERRORS as e:
                logging.warning("%s: %s", show.name, str(e))
                report.failures.append(ShowFailure(show.key, show.name, str(e)))
                if self.strict:
                    raise
                if show.key in previous:
                    entry = previous[show.key]
                    report.candidates.append(
                        Candidate(show.key, show.name, entry.code, entry.air_epoch, show.watched)
                    )
                continue

            if resolution is None:
                logging.warning("%s: no aired episode found", show.name)
                report.failures.append(ShowFailure(show.key, show.name, "no aired episode"))
                continue

            entry = previous.get(show.key)
            candidate = Candidate(
                key=show.key,
                name=show.name,
                code=resolution.code,
                air_epoch=resolution.air_epoch,
                watched=show.watched,
                from_cache=resolution.from_cache,
                changed=entry is None or entry.code != resolution.code,
                concluded=resolution.concluded,
            )
            if candidate.changed:
                logging.info("%s: %s -> %s", show.name, entry.code if entry else "(new)",
                             candidate.code)
            report.candidates.append(candidate)

        report.candidates.sort(key=sort_key)

        if persist and not filters:
            self.schedule_store.save(c.to_schedule_entry() for c in report.candidates)
            report.persisted = True
            if self.cache_manager is not None:
                self.cache_manager.clean_show_cache([show.key for show in shows])
        elif persist:
            logging.info("Name filters given - schedule not saved")

        logging.info("Probe completed: %d resolved, %d changed, %d failed",
                     len(report.candidates), len(report.changed), len(report.failures))
        return report

    def status(self, filters: Optional[List[str]] = None) -> List[Candidate]:
        """Fresh probe compared with the persisted schedule, nothing saved"""
        previous = self.schedule_store.load()
        report = self.probe(filters, persist=False)
        return compute_delta(previous, report.candidates)

    def catch_up(self, keys: Iterable[str]) -> CatchUpResult:
        """
        Mark shows as watched up to their scheduled episode

        Raises:
            InvalidKey: none of the keys has a schedule entry
            ConfigWriteError: the watched configuration could not be replaced
        """
        schedule = self.schedule_store.load()
        requested = [key.strip().lower() for key in keys if key.strip()]
        valid = [key for key in requested if key in schedule]
        invalid = [key for key in requested if key not in schedule]

        for key in invalid:
            logging.warning("%s: no schedule entry, ignored", key)
        if not valid:
            raise InvalidKey(requested)

        updated = self.watchlist.rewrite({key: schedule[key].code for key in valid})
        changes = self.integrate()
        return CatchUpResult(updated=updated, invalid=invalid, changes=changes)

    def integrate(self) -> int:
        """
        Bring the schedule in line with the watched configuration

        Returns:
            number of schedule entries updated or removed
        """
        shows = self.watchlist.load()
        schedule = self.schedule_store.load()
        today = self.clock()
        changes = 0

        targets = [show for show in shows if show.key in schedule]
        if len(targets) == 1:
            self.prober.single_target()

        for show in targets:
            entry = schedule[show.key]
            try:
                action = reconcile_one(show, entry, partial(self.prober.next_unseen, show, today))
            except SHOW_ERRORS as e:
                logging.warning("%s: cannot refresh schedule entry: %s", show.name, str(e))
                if self.strict:
                    raise
                continue

            if action.kind is ActionKind.REMOVE:
                logging.info("%s: caught up with %s", show.name, show.watched)
                del schedule[show.key]
                changes += 1
            elif action.kind is ActionKind.UPDATE:
                logging.info("%s: schedule %s -> %s", show.name, entry.code, action.code)
                schedule[show.key] = ScheduleEntry(show.key, entry.name, action.code,
                                                   action.air_epoch)
                changes += 1

        configured = {show.key for show in shows}
        for key in [key for key in schedule if key not in configured]:
            logging.info("%s: no longer configured, removed from schedule", key)
            del schedule[key]
            changes += 1

        if changes:
            self.schedule_store.save(schedule.values())
        logging.info("Integration completed: %d change(s)", changes)
        return changes

    def available(self, today: Optional[int] = None) -> List[ScheduleEntry]:
        """Scheduled episodes already aired and not yet watched"""
        today = self.clock() if today is None else today
        shows = self.watchlist.by_key()
        ready = []
        for entry in self.schedule_store.load().values():
            show = shows.get(entry.key)
            if show is None or entry.air_epoch > today:
                continue
            if code_ordinal(entry.code) > code_ordinal(show.watched):
                ready.append(entry)
        return sorted(ready, key=sort_key)

    def next_after(self, key: str) -> Optional[Resolution]:
        """Episode following the last watched one of a configured show"""
        show = self.watchlist.by_key().get(key.strip().lower())
        if show is None:
            raise InvalidKey([key])
        self.prober.single_target()
        return self.prober.confirm_watched(show, self.clock())
