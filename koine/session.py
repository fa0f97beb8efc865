"""SessionScheduler: runs one study session over an interleaved card queue.

The main queue is consumed front to back. Cards still on the learning
ladder after a review wait in a hold list sorted by due time; tick() moves
due holds back into the queue right after the card being shown. The
session is Idle until built, Active while a card is showing or holds are
pending, and Complete once both are exhausted.
"""

import bisect
import enum
import itertools
import math
import threading
import uuid
from datetime import datetime, timedelta

from koine.algorithm import compute_next
from koine.clock import SystemClock
from koine.config import DEFAULT_CONFIG, SchedulerConfig, Settings
from koine.errors import NoCurrentCard
from koine.filters import StudyFilters
from koine.models import Card, LearningHold, QueueStats, Requeue, StudyQueueEntry
from koine.queue_builder import QueueBuilder


class SessionState(str, enum.Enum):
    IDLE = "idle"
    ACTIVE = "active"
    COMPLETE = "complete"


class SessionScheduler:
    def __init__(self, store, clock=None, config: SchedulerConfig | None = None,
                 builder: QueueBuilder | None = None):
        self.store = store
        self.clock = clock or SystemClock()
        self.config = config or DEFAULT_CONFIG
        self.builder = builder or QueueBuilder(store, self.clock)
        self.session_id = str(uuid.uuid4())
        self.state = SessionState.IDLE
        self.queue: list[StudyQueueEntry] = []
        self.position = 0
        self.holds: list[LearningHold] = []
        self.pending_writes: dict[str, Card] = {}
        self.reviewed = 0
        self._live: dict[str, Card] = {}
        self._wait_seconds: int | None = None
        self._seq = itertools.count()
        self._lock = threading.RLock()

    def build(self, filters: StudyFilters, settings: Settings) -> list[StudyQueueEntry]:
        """Replace the main queue. Pending holds carry over.

        Cards already waiting in a hold are left out, and a card whose last
        review has not reached the store keeps its in-memory state.
        """
        with self._lock:
            now = self.clock.now()
            held = {h.entry.card_id for h in self.holds}
            self.queue = []
            for entry in self.builder.build(filters, settings):
                if entry.card_id in held:
                    continue
                unsaved = self.pending_writes.get(entry.card_id)
                if unsaved is not None:
                    if unsaved.due_at is not None and unsaved.due_at > now:
                        continue
                    entry = StudyQueueEntry(entry.card_type, unsaved)
                self.queue.append(entry)
            self.position = 0
            for entry in self.queue:
                self._live[entry.card_id] = entry.card
            self._update_state()
            return list(self.queue)

    def current_card(self) -> StudyQueueEntry | None:
        with self._lock:
            if self.position >= len(self.queue):
                return None
            return self._live_entry(self.queue[self.position])

    def remaining(self) -> list[StudyQueueEntry]:
        with self._lock:
            return [self._live_entry(e) for e in self.queue[self.position:]]

    def review(self, quality: int) -> tuple[Card, Requeue | None]:
        """Grade the current card, advance, then persist.

        In-memory state is updated before the store write, so a StoreError
        leaves the session consistent; the card stays in pending_writes
        until flush_pending() succeeds.
        """
        with self._lock:
            if self.position >= len(self.queue):
                raise NoCurrentCard("No current card")
            entry = self.queue[self.position]
            now = self.clock.now()
            updated, requeue = compute_next(self._live[entry.card_id], quality, now, self.config)

            self._live[updated.id] = updated
            self.position += 1
            self.reviewed += 1
            if requeue is not None:
                self._hold(StudyQueueEntry(entry.card_type, updated),
                           now + timedelta(minutes=requeue.delay_minutes))
            self._refresh_wait(now)
            self._update_state()

            self.pending_writes[updated.id] = updated
            self.store.save(updated)
            del self.pending_writes[updated.id]
            return updated, requeue

    def skip(self) -> StudyQueueEntry:
        """Drop the current card from this session without grading it."""
        with self._lock:
            if self.position >= len(self.queue):
                raise NoCurrentCard("No current card")
            entry = self._live_entry(self.queue[self.position])
            self.position += 1
            self._update_state()
            return entry

    def flush_pending(self) -> int:
        """Retry failed store writes. Returns how many were written."""
        with self._lock:
            written = 0
            for card_id in list(self.pending_writes):
                self.store.save(self.pending_writes[card_id])
                del self.pending_writes[card_id]
                written += 1
            return written

    def tick(self, now: datetime | None = None) -> int:
        """Promote due learning cards into the queue. Returns how many moved."""
        with self._lock:
            if now is None:
                now = self.clock.now()
            cut = 0
            while cut < len(self.holds) and self.holds[cut].due_at <= now:
                cut += 1
            due, self.holds = self.holds[:cut], self.holds[cut:]
            if due:
                insert_at = self.position + 1 if self.position < len(self.queue) else self.position
                self.queue[insert_at:insert_at] = [h.entry for h in due]
            self._refresh_wait(now)
            self._update_state()
            return len(due)

    def wait_seconds(self) -> int | None:
        with self._lock:
            return self._wait_seconds

    def stats(self) -> QueueStats:
        with self._lock:
            remaining = self.queue[self.position:]
            new_count = sum(1 for e in remaining if self._live[e.card_id].repetitions == 0)
            return QueueStats(
                total=len(self.queue),
                remaining=len(remaining),
                new_count=new_count,
                review_count=len(remaining) - new_count,
                learning_count=len(self.holds),
            )

    def _hold(self, entry: StudyQueueEntry, due_at: datetime):
        hold = LearningHold(entry=entry, due_at=due_at, seq=next(self._seq))
        bisect.insort(self.holds, hold, key=lambda h: (h.due_at, h.seq))

    def _refresh_wait(self, now: datetime):
        if not self.holds:
            self._wait_seconds = None
            return
        delta = (self.holds[0].due_at - now).total_seconds()
        self._wait_seconds = max(0, math.ceil(delta))

    def _update_state(self):
        if self.position < len(self.queue) or self.holds:
            self.state = SessionState.ACTIVE
        else:
            self.state = SessionState.COMPLETE

    def _live_entry(self, entry: StudyQueueEntry) -> StudyQueueEntry:
        return StudyQueueEntry(entry.card_type, self._live[entry.card_id])
