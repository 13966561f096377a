from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from .identity import UserSource
from .models import OperationResult, Session, SessionRequest
from .recorder import SessionRecorder, compute_stars, utc_now

PASS_WINDOW = timedelta(days=8)

_ENTRY_PATTERN = re.compile(r"^(?P<account>.+?)\s*=\s*(?P<start>\d+)\s*-\s*(?P<end>\d+)\s*(?P<pass>\+\s*pass)?$", re.IGNORECASE)


@dataclass(frozen=True, slots=True)
class BatchEntry:
    account_external_id: str
    stars_start: int
    stars_end: int
    purchased_pass: bool = False


@dataclass(slots=True)
class BatchResult:
    results: list[tuple[BatchEntry, OperationResult[Session]]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return bool(self.results) and all(result.ok for _, result in self.results)

    @property
    def failures(self) -> list[tuple[BatchEntry, OperationResult[Session]]]:
        return [(entry, result) for entry, result in self.results if not result.ok]

    @property
    def total_stars_earned(self) -> int:
        return sum(result.data.stars_earned for _, result in self.results if result.ok)


def parse_batch_entries(text: str) -> list[BatchEntry]:
    """Parse `"ponce=10-30; money tree=5-5+pass"` into batch entries."""
    entries: list[BatchEntry] = []
    for chunk in text.split(";"):
        chunk = chunk.strip()
        if not chunk:
            continue

        match = _ENTRY_PATTERN.match(chunk)
        if match is None:
            raise ValueError(f"Could not parse entry {chunk!r}; expected account=start-end[+pass]")

        entries.append(
            BatchEntry(
                account_external_id=match["account"].strip(),
                stars_start=int(match["start"]),
                stars_end=int(match["end"]),
                purchased_pass=match["pass"] is not None,
            )
        )

    if not entries:
        raise ValueError("No entries given")
    return entries


def estimate_stars_earned(entries: list[BatchEntry]) -> int:
    return sum(compute_stars(entry.stars_start, entry.stars_end, entry.purchased_pass).stars_earned for entry in entries)


def submit_batch(
    recorder: SessionRecorder,
    user: UserSource,
    entries: list[BatchEntry],
    now_utc: datetime | None = None,
) -> BatchResult:
    # Every entry is its own unit of work; a failure does not undo earlier entries.
    now = now_utc or utc_now()
    window_end = now + PASS_WINDOW

    batch = BatchResult()
    for entry in entries:
        request = SessionRequest(
            account_external_id=entry.account_external_id,
            start_time=now,
            end_time=window_end,
            stars_start=entry.stars_start,
            stars_end=entry.stars_end,
            purchased_pass=entry.purchased_pass,
        )
        batch.results.append((entry, recorder.record_session(user, request, now_utc=now)))

    if batch.failures:
        recorder.logger.warning(
            "Batch submission partially failed: %d of %d entries rejected",
            len(batch.failures),
            len(entries),
        )
    return batch
