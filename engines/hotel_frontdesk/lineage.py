"""
Front Desk Engine: Booking Lineages and Segment Resolver
==========================================================
A lineage is one guest stay across splits. It starts at a root
booking segment; transfers and resumptions add segments that point
back at it (payload original_id). Extensions, transfers,
interruptions, folio movements, checkouts and cancellations attach to
whichever segment their booking_id names.

Segment resolution (per segment):
    effective check_out =
        latest interruption date, if any        (terminal)
        else latest transfer date, if any       (lineage split)
        else latest extension date, if later than the booked check_out
        else the booked check_out

Maxima are taken by date, so two extensions landing on the same date
resolve to the same window no matter how many were recorded.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timezone, tzinfo
from typing import AbstractSet, Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from core.event_store.contracts import RecordStatus
from core.time.temporal import (
    DEFAULT_CHECK_IN_TIME,
    DEFAULT_CHECK_OUT_TIME,
    StayWindow,
    parse_date,
    parse_instant,
)
from engines.hotel_frontdesk.records import (
    Booking,
    Cancellation,
    Checkout,
    ClassifiedRecord,
    Extension,
    FolioMovement,
    InterruptedStayCredit,
    Interruption,
    StayValue,
    Transfer,
    TransferCompletion,
)
from engines.inventory.config_resolver import latest_per_lineage

# Statuses under which a booking segment counts as live.
LIVE_BOOKING_STATUSES = frozenset({RecordStatus.APPROVED, RecordStatus.PENDING})

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_LINKED_TYPES = (
    Extension, Transfer, Interruption, FolioMovement, Checkout,
    Cancellation, InterruptedStayCredit, TransferCompletion,
)


def _later(a: StayValue, b: StayValue) -> bool:
    """a > b, by instant when both carry a time, else by date."""
    if isinstance(a, datetime) and isinstance(b, datetime):
        return parse_instant(a) > parse_instant(b)
    return parse_date(a) > parse_date(b)


def _latest(values: Iterable[StayValue]) -> Optional[StayValue]:
    best: Optional[StayValue] = None
    for value in values:
        if best is None or _later(value, best):
            best = value
    return best


# ══════════════════════════════════════════════════════════════
# SEGMENT RESOLVER
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class EffectiveStaySegment:
    """
    Effective stay of one booking segment after folding its events.

    ended_by: "interruption" | "transfer" | "extension" | "booking"
    scheduled_check_out is the check-out before any interruption.
    """

    booking: Booking
    room_id: str
    check_in: StayValue
    check_out: StayValue
    scheduled_check_out: Optional[StayValue] = None
    ended_by: str = "booking"
    interruption_date: Optional[StayValue] = None
    transfer_date: Optional[StayValue] = None
    extension_check_out: Optional[StayValue] = None

    @property
    def booking_id(self) -> str:
        return self.booking.id

    @property
    def check_in_date(self) -> date:
        return parse_date(self.check_in)

    @property
    def check_out_date(self) -> date:
        return parse_date(self.check_out)

    @property
    def interrupted(self) -> bool:
        return self.interruption_date is not None

    def covers(self, day: date) -> bool:
        """Guest is in the room on business date `day`."""
        return self.check_in_date <= day < self.check_out_date

    def interrupted_on(self, day: date) -> bool:
        """Stay was paused on or before `day` while still inside its booked dates."""
        if self.interruption_date is None:
            return False
        scheduled = parse_date(self.scheduled_check_out or self.check_out)
        return (
            parse_date(self.interruption_date) <= day
            and self.check_in_date <= day < scheduled
        )

    def window(
        self,
        *,
        check_in_time: time = DEFAULT_CHECK_IN_TIME,
        check_out_time: time = DEFAULT_CHECK_OUT_TIME,
        tz: Optional[tzinfo] = None,
    ) -> Optional[StayWindow]:
        """Half-open window, or None when the segment ended before it began."""
        try:
            return StayWindow.from_dates(
                self.check_in,
                self.check_out,
                check_in_time=check_in_time,
                check_out_time=check_out_time,
                tz=tz,
            )
        except ValueError:
            return None

    def to_dict(self) -> dict:
        return {
            "booking_id": self.booking_id,
            "room_id": self.room_id,
            "check_in": self.check_in.isoformat(),
            "check_out": self.check_out.isoformat(),
            "ended_by": self.ended_by,
        }


def resolve_segment(
    booking: Booking,
    records: Iterable[ClassifiedRecord],
    refs: Optional[AbstractSet[str]] = None,
) -> EffectiveStaySegment:
    """
    Fold the extensions, transfers and interruptions aimed at `booking`.

    `refs` are the ids records may use to name the segment; defaults to
    the segment id and its lineage root.
    """
    refs = refs or {booking.id, booking.lineage_key}
    extensions: List[StayValue] = []
    transfers: List[StayValue] = []
    interruptions: List[StayValue] = []
    for record in records:
        if isinstance(record, Extension) and record.booking_id in refs:
            extensions.append(record.new_check_out)
        elif isinstance(record, Transfer) and record.booking_id in refs:
            transfers.append(record.transfer_date)
        elif isinstance(record, Interruption) and record.booking_id in refs:
            interruptions.append(record.interruption_date)

    latest_extension = _latest(extensions)
    latest_transfer = _latest(transfers)
    latest_interruption = _latest(interruptions)

    scheduled, ended_by = booking.check_out, "booking"
    if latest_transfer is not None:
        scheduled, ended_by = latest_transfer, "transfer"
    elif latest_extension is not None and _later(latest_extension, booking.check_out):
        scheduled, ended_by = latest_extension, "extension"

    check_out = scheduled
    if latest_interruption is not None:
        check_out, ended_by = latest_interruption, "interruption"

    return EffectiveStaySegment(
        booking=booking,
        room_id=booking.room_id,
        check_in=booking.check_in,
        check_out=check_out,
        scheduled_check_out=scheduled,
        ended_by=ended_by,
        interruption_date=latest_interruption,
        transfer_date=latest_transfer,
        extension_check_out=latest_extension,
    )


# ══════════════════════════════════════════════════════════════
# LINEAGE
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class BookingLineage:
    """Root segment, later segments and every record aimed at them."""

    root: Booking
    segments: Tuple[Booking, ...]
    records: Tuple[ClassifiedRecord, ...]
    segment_refs: Mapping[str, FrozenSet[str]]

    @property
    def root_id(self) -> str:
        return self.root.lineage_key

    @property
    def current(self) -> Booking:
        """Latest segment by check-in, then by creation."""
        return self.segments[-1]

    @property
    def reference_ids(self) -> Set[str]:
        refs: Set[str] = set()
        for segment in self.segments:
            refs |= self.refs_for(segment)
        return refs

    def refs_for(self, segment: Booking) -> FrozenSet[str]:
        return self.segment_refs.get(
            segment.lineage_key, frozenset({segment.id, segment.lineage_key})
        )

    @property
    def checkouts(self) -> List[Checkout]:
        return [r for r in self.records if isinstance(r, Checkout)]

    @property
    def cancellations(self) -> List[Cancellation]:
        return [r for r in self.records if isinstance(r, Cancellation)]

    @property
    def is_past(self) -> bool:
        return bool(self.checkouts or self.cancellations)

    @property
    def guest_name(self) -> str:
        for segment in reversed(self.segments):
            if segment.guest_name:
                return segment.guest_name
        return ""

    def resolved_segments(self) -> List[EffectiveStaySegment]:
        return [resolve_segment(s, self.records, self.refs_for(s)) for s in self.segments]

    def effective_segment(self) -> EffectiveStaySegment:
        return resolve_segment(self.current, self.records, self.refs_for(self.current))


@dataclass(frozen=True)
class LineageIndex:
    lineages: Tuple[BookingLineage, ...]
    aliases: Dict[str, str]

    def find(self, reference: Optional[str]) -> Optional[BookingLineage]:
        """Lineage owning a booking id, lineage root or payload booking_id."""
        if not reference:
            return None
        root = self.aliases.get(str(reference))
        if root is None:
            return None
        for lineage in self.lineages:
            if lineage.root_id == root:
                return lineage
        return None


def _instant_or_epoch(value: Optional[StayValue]) -> datetime:
    return parse_instant(value) if value is not None else _EPOCH


def _segment_order(booking: Booking, position: Mapping[str, int]) -> Tuple[date, datetime, int, str]:
    """Check-in, then creation time, then store order. Ids only break ties last."""
    return (
        parse_date(booking.check_in),
        _instant_or_epoch(booking.created_at),
        position.get(booking.id, len(position)),
        booking.id,
    )


def group_lineages(records: Sequence[ClassifiedRecord]) -> LineageIndex:
    """
    Group live booking segments into lineages and attach related records.

    Booking versions collapse to their latest version first; references
    to any version's id still land on the lineage.
    """
    live = [r for r in records if isinstance(r, Booking) and r.status in LIVE_BOOKING_STATUSES]
    all_bookings = [r for r in records if isinstance(r, Booking)]
    bookings = list(latest_per_lineage(live).values())
    position = {r.id: i for i, r in enumerate(records)}

    # reference -> booking lineage key
    own_key: Dict[str, str] = {}
    for booking in all_bookings:
        own_key[booking.id] = booking.lineage_key
        payload_id = booking.event.payload.get("booking_id")
        if payload_id:
            own_key.setdefault(str(payload_id), booking.lineage_key)

    by_key = {b.lineage_key: b for b in bookings}

    def root_of(booking: Booking) -> str:
        seen: Set[str] = set()
        current = booking
        while current.parent_id:
            parent_key = own_key.get(current.parent_id)
            parent = by_key.get(parent_key) if parent_key else None
            if parent is None or parent.lineage_key in seen:
                break
            seen.add(current.lineage_key)
            current = parent
        return current.lineage_key

    groups: Dict[str, List[Booking]] = {}
    for booking in bookings:
        groups.setdefault(root_of(booking), []).append(booking)

    aliases: Dict[str, str] = {}
    for root_key, segments in groups.items():
        for segment in segments:
            aliases[segment.lineage_key] = root_key
    for ref, key in own_key.items():
        if key in aliases:
            aliases.setdefault(ref, aliases[key])

    attached: Dict[str, List[ClassifiedRecord]] = {key: [] for key in groups}
    for record in records:
        if not isinstance(record, _LINKED_TYPES):
            continue
        root_key = aliases.get(getattr(record, "booking_id", "") or "")
        if root_key is not None:
            attached[root_key].append(record)

    refs_by_segment: Dict[str, Set[str]] = {}
    for ref, key in own_key.items():
        refs_by_segment.setdefault(key, {key}).add(ref)

    lineages = []
    for root_key, segments in groups.items():
        segments.sort(key=lambda s: _segment_order(s, position))
        lineages.append(BookingLineage(
            root=by_key[root_key],
            segments=tuple(segments),
            records=tuple(attached[root_key]),
            segment_refs={
                s.lineage_key: frozenset(refs_by_segment.get(s.lineage_key, {s.lineage_key}))
                for s in segments
            },
        ))
    lineages.sort(key=lambda l: _segment_order(l.root, position))
    return LineageIndex(tuple(lineages), aliases)


# ══════════════════════════════════════════════════════════════
# ACTIVE / PAST / CHECKOUT VIEWS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class LineageViews:
    active: Tuple[BookingLineage, ...]
    past: Tuple[BookingLineage, ...]
    checkouts: Tuple[Checkout, ...]


def split_lineages(index: LineageIndex, records: Iterable[ClassifiedRecord]) -> LineageViews:
    """Past = a checkout or cancellation references the lineage."""
    active = tuple(l for l in index.lineages if not l.is_past)
    past = tuple(l for l in index.lineages if l.is_past)
    checkouts = tuple(sorted(
        (r for r in records if isinstance(r, Checkout)),
        key=lambda c: (_instant_or_epoch(c.checkout_date), c.id),
    ))
    return LineageViews(active=active, past=past, checkouts=checkouts)
