"""
Front Desk Engine: Service
============================
Mutating front-desk actions.

Every action runs the same pipeline:
    1. probe the session             (SessionExpiredError, nothing written)
    2. fetch a fresh snapshot        (the last displayed one may be stale)
    3. validate the request          (ValidationError, nothing written)
    4. conflict-check the room       (ConflictError, nothing written)
    5. write
    6. recompute the lineage balance and append a balance_snapshot

The pre-write checks are an early exit only. Between step 2 and step 5
another desk may write; the store's own constraints decide, and their
refusals surface as StoreConstraintError (retryable).
"""
from __future__ import annotations

import logging
import math
import uuid
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, Iterable, Mapping, Optional, Tuple

from core.config.frontdesk import FrontDeskSettings
from core.event_store.contracts import (
    EventLog,
    OperationalEvent,
    RecordStatus,
    RoomDirectory,
    SessionContext,
)
from core.event_store.persistence.errors import (
    InvalidTransitionError,
    RecordNotFoundError,
    StoreConstraintViolation,
    StoreUnavailableError,
)
from core.time.clock import Clock, business_today
from core.time.temporal import StayWindow, nights_between, parse_clock_time
from engines.hotel_frontdesk import events as fd
from engines.hotel_frontdesk import policies
from engines.hotel_frontdesk.commands import (
    CancelStayRequest,
    CheckOutRequest,
    CreateReservationRequest,
    ExtendStayRequest,
    FolioRequest,
    HousekeepingRequest,
    InterruptStayRequest,
    RefundCreditRequest,
    ResumeStayRequest,
    TransferRoomRequest,
)
from engines.hotel_frontdesk.conflicts import (
    collect_blockers,
    current_reservations,
    ensure_no_conflict,
    reservation_window,
)
from engines.hotel_frontdesk.credits import consumed_credit_ids, current_credits
from engines.hotel_frontdesk.errors import (
    FrontDeskError,
    PartialWriteFailure,
    SessionExpiredError,
    StoreConstraintError,
    TransientFetchError,
    ValidationError,
)
from engines.hotel_frontdesk.ledger_engine import LedgerSummary, compute_ledger, resync_balance
from engines.hotel_frontdesk.lineage import BookingLineage, LineageIndex, group_lineages
from engines.hotel_frontdesk.occupancy_engine import latest_housekeeping
from engines.hotel_frontdesk.records import (
    Booking,
    InterruptedStayCredit,
    Reservation,
    Transfer,
    TransferCompletion,
)
from engines.hotel_frontdesk.snapshot import FrontDeskSnapshot, fetch_snapshot

logger = logging.getLogger("frontdesk.service")

CLEAN_REPORTS = frozenset({"cleaned", "inspected"})


@dataclass(frozen=True)
class ActionResult:
    action: str
    record_ids: Tuple[str, ...]
    summary: Optional[LedgerSummary] = None

    @property
    def record_id(self) -> Optional[str]:
        return self.record_ids[0] if self.record_ids else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": self.action,
            "record_ids": list(self.record_ids),
            "summary": self.summary.to_dict() if self.summary else None,
        }


def determine_initial_status(check_in_date: date, role: str, today: date) -> RecordStatus:
    """Admins and managers, or a same-day arrival, skip the approval queue."""
    if role in fd.APPROVER_ROLES or check_in_date == today:
        return RecordStatus.APPROVED
    return RecordStatus.PENDING


def generate_reservation_code(today: date) -> str:
    return f"RES-{today.year}-{uuid.uuid4().int % 90000 + 10000}"


def _enforce(field: str, message: Optional[str]) -> None:
    if message:
        raise ValidationError(field, message)


class FrontDeskService:
    def __init__(
        self,
        *,
        event_log: EventLog,
        rooms: RoomDirectory,
        session: SessionContext,
        clock: Clock,
        settings: Optional[FrontDeskSettings] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        self._event_log = event_log
        self._rooms     = rooms
        self._session   = session
        self._clock     = clock
        self._settings  = settings or FrontDeskSettings()
        self._new_id    = id_factory or (lambda: str(uuid.uuid4()))

    # ══════════════════════════════════════════════════════════
    # PIPELINE
    # ══════════════════════════════════════════════════════════

    async def _perform(
        self, action: str, reference: str, operation: Callable[[], Awaitable[ActionResult]]
    ) -> ActionResult:
        try:
            result = await operation()
        except FrontDeskError as exc:
            logger.info(f"{action} rejected for {reference}: {exc.code} {exc}")
            raise
        logger.info(f"{action} accepted for {reference}: {', '.join(result.record_ids)}")
        return result

    async def _preflight(self) -> FrontDeskSnapshot:
        if not await self._session.is_session_valid():
            raise SessionExpiredError()
        return await self._snapshot()

    async def _snapshot(self) -> FrontDeskSnapshot:
        return await fetch_snapshot(
            self._event_log, self._rooms, clock=self._clock, settings=self._settings,
        )

    def _now(self) -> datetime:
        return self._clock.now_utc()

    def _today(self) -> date:
        return business_today(self._now(), self._settings.business_time_zone)

    def _blockers(self, snapshot: FrontDeskSnapshot, index: LineageIndex, room_id: str,
                  exclude_ids: Iterable[str] = ()):
        return collect_blockers(
            room_id,
            snapshot.records,
            index,
            tz=self._settings.tz,
            check_in_time=self._settings.default_check_in_time,
            check_out_time=self._settings.default_check_out_time,
            exclude_ids=frozenset(exclude_ids),
        )

    def _stay_window(self, check_in: Any, check_out: Any) -> StayWindow:
        try:
            return StayWindow.from_dates(
                check_in,
                check_out,
                check_in_time=self._settings.default_check_in_time,
                check_out_time=self._settings.default_check_out_time,
                tz=self._settings.tz,
            )
        except ValueError as exc:
            raise ValidationError("window", str(exc)) from exc

    async def _guarded(self, operation: str, awaitable: Awaitable[Any]) -> Any:
        try:
            return await awaitable
        except StoreConstraintViolation as exc:
            logger.warning(f"Store constraint hit during {operation}: {exc.detail}")
            raise StoreConstraintError(exc.detail) from exc
        except StoreUnavailableError as exc:
            raise TransientFetchError("event log", exc.detail) from exc
        except RecordNotFoundError as exc:
            raise ValidationError("record_id", f"record '{exc.record_id}' not found.") from exc
        except InvalidTransitionError as exc:
            raise ValidationError("status", f"record '{exc.record_id}' is {exc.detail}") from exc

    async def _append(
        self,
        payload: Mapping[str, Any],
        *,
        status: RecordStatus = RecordStatus.APPROVED,
        financial_amount: int = 0,
        entity_kind: Optional[str] = None,
    ) -> OperationalEvent:
        event = OperationalEvent(
            id=self._new_id(),
            entity_kind=entity_kind or self._settings.entity_kind,
            payload=payload,
            status=status,
            submitted_by=self._session.staff_id,
            financial_amount=financial_amount,
        )
        return await self._guarded(f"insert {payload.get('type')}", self._event_log.insert(event))

    async def _resync(self, reference: str, created_ids: Tuple[str, ...]) -> Optional[LedgerSummary]:
        """Fresh ledger for the lineage; the stored snapshot is display only."""
        try:
            snapshot = await self._snapshot()
            lineage = group_lineages(snapshot.records).find(reference)
            if lineage is None:
                return None
            summary = resync_balance(lineage)
            await self._append(fd.build_balance_snapshot_payload(
                booking_id=lineage.root_id,
                total_charges=summary.total_charges,
                total_payments=summary.total_payments,
                balance=summary.balance,
                taken_at=self._now(),
            ))
        except FrontDeskError as exc:
            raise PartialWriteFailure(created_ids[0], "balance resync", exc) from exc
        return summary

    def _active_lineage(self, index: LineageIndex, booking_id: str) -> BookingLineage:
        lineage = index.find(booking_id)
        _enforce("booking_id", policies.lineage_must_exist_policy(booking_id, lineage))
        _enforce("booking_id", policies.lineage_must_be_active_policy(lineage))
        return lineage

    def _find_credit(self, snapshot: FrontDeskSnapshot, credit_id: str) -> Optional[InterruptedStayCredit]:
        for credit in current_credits(snapshot.records):
            if credit_id in (credit.id, credit.lineage_key):
                return credit
        return None

    # ══════════════════════════════════════════════════════════
    # STAY CHANGES
    # ══════════════════════════════════════════════════════════

    async def extend_stay(self, booking_id: str, nights: int, reason: str = "") -> ActionResult:
        return await self._perform(
            "extend_stay", booking_id,
            lambda: self._extend(ExtendStayRequest(booking_id, nights, reason)),
        )

    async def _extend(self, req: ExtendStayRequest) -> ActionResult:
        snapshot = await self._preflight()
        index = group_lineages(snapshot.records)
        lineage = self._active_lineage(index, req.booking_id)
        segment = lineage.effective_segment()
        _enforce("booking_id", policies.stay_must_not_be_interrupted_policy(segment))

        new_check_out = segment.check_out + timedelta(days=req.nights)
        candidate = StayWindow.from_dates(
            segment.check_out,
            new_check_out,
            check_in_time=self._settings.default_check_out_time,
            check_out_time=self._settings.default_check_out_time,
            tz=self._settings.tz,
        )
        ensure_no_conflict(
            candidate,
            self._blockers(snapshot, index, segment.room_id, lineage.reference_ids),
        )

        booking = segment.booking
        room = snapshot.room_map().get(segment.room_id)
        rate = booking.room_rate or (room.price_per_night if room else 0)
        created = await self._append(
            fd.build_extension_payload(
                booking_id=booking.id,
                previous_check_out=segment.check_out,
                new_check_out=new_check_out,
                nights_added=req.nights,
                additional_cost=rate * req.nights,
                reason=req.reason,
            ),
            financial_amount=rate * req.nights,
        )
        ids = (created.id,)
        return ActionResult("extend_stay", ids, await self._resync(lineage.root_id, ids))

    async def transfer_room(self, booking_id: str, new_room_id: str, reason: str) -> ActionResult:
        return await self._perform(
            "transfer_room", booking_id,
            lambda: self._transfer(TransferRoomRequest(booking_id, new_room_id, reason)),
        )

    async def _transfer(self, req: TransferRoomRequest) -> ActionResult:
        snapshot = await self._preflight()
        index = group_lineages(snapshot.records)
        lineage = self._active_lineage(index, req.booking_id)
        segment = lineage.effective_segment()
        today = self._today()
        rooms = snapshot.room_map()

        _enforce("booking_id", policies.stay_must_not_be_interrupted_policy(segment))
        _enforce("booking_id", policies.remaining_nights_must_be_positive_policy(segment, today))
        _enforce("new_room_id", policies.room_must_exist_policy(req.new_room_id, rooms))
        _enforce("new_room_id", policies.room_must_differ_policy(segment.room_id, req.new_room_id))

        check_out = segment.check_out_date
        ensure_no_conflict(
            self._stay_window(today, check_out),
            self._blockers(snapshot, index, req.new_room_id, lineage.reference_ids),
        )

        booking = segment.booking
        new_room = rooms[req.new_room_id]
        remaining = nights_between(today, check_out)
        old_rate = booking.room_rate
        new_rate = new_room.price_per_night or old_rate
        refund = remaining * old_rate
        new_cost = remaining * new_rate
        ids = []

        new_segment = await self._append(
            fd.build_booking_payload(
                booking_id=self._new_id(),
                original_id=lineage.root_id,
                guest={"full_name": lineage.guest_name},
                room_id=req.new_room_id,
                check_in=today,
                check_out=check_out,
                room_rate=new_rate,
                nights=remaining,
                paid_amount=0,
            ),
        )
        ids.append(new_segment.id)
        if refund > 0:
            refunded = await self._append(
                fd.build_folio_payload(
                    fd.REFUND_RECORD,
                    booking_id=booking.id,
                    amount=refund,
                    reason="Transfer adjustment",
                    on_date=self._now(),
                ),
                financial_amount=-refund,
            )
            ids.append(refunded.id)
        transfer = await self._append(
            fd.build_transfer_payload(
                booking_id=booking.id,
                previous_room_id=segment.room_id,
                new_room_id=req.new_room_id,
                transfer_date=today,
                reason=req.reason,
                refund_amount=refund,
                new_charge_amount=new_cost,
            ),
        )
        ids.append(transfer.id)
        old_room = rooms.get(segment.room_id)
        report = await self._append(
            fd.build_housekeeping_payload(
                room_id=segment.room_id,
                room_number=old_room.room_number if old_room else "",
                housekeeping_status="dirty",
                report_date=self._now(),
                room_condition="needs_attention",
                housekeeper_name="Front Desk",
                notes="Marked dirty after room transfer",
            ),
        )
        ids.append(report.id)
        ids = tuple(ids)
        return ActionResult("transfer_room", ids, await self._resync(lineage.root_id, ids))

    async def interrupt_stay(
        self,
        booking_id: str,
        reason: str,
        credit_remaining: Optional[int] = None,
        can_resume: bool = True,
    ) -> ActionResult:
        return await self._perform(
            "interrupt_stay", booking_id,
            lambda: self._interrupt(
                InterruptStayRequest(booking_id, reason, credit_remaining, can_resume)
            ),
        )

    async def _interrupt(self, req: InterruptStayRequest) -> ActionResult:
        snapshot = await self._preflight()
        index = group_lineages(snapshot.records)
        lineage = self._active_lineage(index, req.booking_id)
        segment = lineage.effective_segment()
        _enforce("booking_id", policies.stay_must_not_be_interrupted_policy(segment))
        today = self._today()

        summary = compute_ledger(lineage).summary
        credit = req.credit_remaining
        if credit is None:
            unused = nights_between(today, segment.check_out_date) * segment.booking.room_rate
            credit = max(0, summary.total_payments - (summary.total_charges - unused))

        room = snapshot.room_map().get(segment.room_id)
        interruption = await self._append(
            fd.build_interruption_payload(
                booking_id=segment.booking_id,
                room_id=segment.room_id,
                interruption_date=today,
                reason=req.reason,
            ),
        )
        try:
            credit_record = await self._append(
                fd.build_credit_payload(
                    booking_id=segment.booking_id,
                    room_id=segment.room_id,
                    room_number=room.room_number if room else "",
                    guest_name=lineage.guest_name,
                    interrupted_at=self._now(),
                    total_paid=summary.total_payments,
                    credit_remaining=credit,
                    can_resume=req.can_resume,
                ),
            )
        except FrontDeskError as exc:
            raise PartialWriteFailure(interruption.id, "interrupted stay credit", exc) from exc
        ids = (interruption.id, credit_record.id)
        return ActionResult("interrupt_stay", ids, await self._resync(lineage.root_id, ids))

    async def resume_interrupted_stay(
        self,
        credit_id: str,
        room_id: str,
        nights: Optional[int] = None,
        payment_method: str = "transfer",
    ) -> ActionResult:
        return await self._perform(
            "resume_interrupted_stay", credit_id,
            lambda: self._resume(ResumeStayRequest(credit_id, room_id, nights, payment_method)),
        )

    async def _resume(self, req: ResumeStayRequest) -> ActionResult:
        snapshot = await self._preflight()
        index = group_lineages(snapshot.records)
        rooms = snapshot.room_map()
        credit = self._find_credit(snapshot, req.credit_id)
        _enforce("credit_id", policies.credit_must_be_open_policy(
            req.credit_id, credit, consumed_credit_ids(snapshot.records),
        ))
        _enforce("credit_id", policies.credit_must_be_resumable_policy(credit))
        _enforce("room_id", policies.room_must_exist_policy(req.room_id, rooms))
        _enforce("room_id", policies.room_must_be_clean_policy(
            req.room_id, latest_housekeeping(snapshot.records).get(req.room_id),
        ))

        rate = rooms[req.room_id].price_per_night
        nights = req.nights
        if nights is None:
            nights = max(1, math.ceil(credit.credit_remaining / rate)) if rate > 0 else 1
        today = self._today()
        check_out = today + timedelta(days=nights)
        ensure_no_conflict(
            self._stay_window(today, check_out),
            self._blockers(snapshot, index, req.room_id),
        )

        total = rate * nights
        segment = await self._append(
            fd.build_booking_payload(
                booking_id=self._new_id(),
                original_id=credit.id,
                guest={"full_name": credit.guest_name},
                room_id=req.room_id,
                check_in=today,
                check_out=check_out,
                room_rate=rate,
                nights=nights,
                paid_amount=min(total, credit.credit_remaining),
                payment_method=req.payment_method,
                meta={"resumed_from_interruption": True, "source_credit_id": credit.id},
            ),
        )
        ids = (segment.id,)
        return ActionResult("resume_interrupted_stay", ids, await self._resync(segment.id, ids))

    async def refund_interrupted_credit(
        self, credit_id: str, reason: str = "Refund of interrupted stay credit",
    ) -> ActionResult:
        return await self._perform(
            "refund_interrupted_credit", credit_id,
            lambda: self._refund_credit(RefundCreditRequest(credit_id, reason)),
        )

    async def _refund_credit(self, req: RefundCreditRequest) -> ActionResult:
        snapshot = await self._preflight()
        credit = self._find_credit(snapshot, req.credit_id)
        _enforce("credit_id", policies.credit_must_be_open_policy(
            req.credit_id, credit, consumed_credit_ids(snapshot.records),
        ))
        amount = credit.credit_remaining
        refund = await self._append(
            fd.build_folio_payload(
                fd.REFUND_RECORD,
                booking_id=None,
                amount=amount,
                reason=req.reason,
                on_date=self._now(),
                source_credit_id=credit.id,
                guest_name=credit.guest_name,
                room_number=credit.room_number,
            ),
            financial_amount=-amount,
        )
        return ActionResult("refund_interrupted_credit", (refund.id,))

    async def check_out(
        self, booking_id: str, payment_method: str = "cash", notes: str = "",
    ) -> ActionResult:
        return await self._perform(
            "check_out", booking_id,
            lambda: self._check_out(CheckOutRequest(booking_id, payment_method, notes)),
        )

    async def _check_out(self, req: CheckOutRequest) -> ActionResult:
        snapshot = await self._preflight()
        index = group_lineages(snapshot.records)
        lineage = self._active_lineage(index, req.booking_id)
        segment = lineage.effective_segment()
        balance = compute_ledger(lineage).balance
        room = snapshot.room_map().get(segment.room_id)
        checkout = await self._append(
            fd.build_checkout_payload(
                booking_id=segment.booking_id,
                room_number=room.room_number if room else "",
                checkout_date=self._now(),
                total_due=balance,
                final_payment=max(0, balance),
                payment_method=req.payment_method,
                notes=req.notes,
            ),
            financial_amount=max(0, balance),
        )
        ids = (checkout.id,)
        return ActionResult("check_out", ids, await self._resync(lineage.root_id, ids))

    async def cancel_stay(self, booking_id: str, reason: str) -> ActionResult:
        return await self._perform(
            "cancel_stay", booking_id,
            lambda: self._cancel(CancelStayRequest(booking_id, reason)),
        )

    async def _cancel(self, req: CancelStayRequest) -> ActionResult:
        snapshot = await self._preflight()
        lineage = self._active_lineage(group_lineages(snapshot.records), req.booking_id)
        cancellation = await self._append(
            fd.build_cancellation_payload(booking_id=lineage.current.id, reason=req.reason),
        )
        ids = (cancellation.id,)
        return ActionResult("cancel_stay", ids, await self._resync(lineage.root_id, ids))

    # ══════════════════════════════════════════════════════════
    # FOLIO
    # ══════════════════════════════════════════════════════════

    async def record_payment(
        self, booking_id: str, amount: int, payment_method: str, reason: str = "",
    ) -> ActionResult:
        return await self._folio(fd.PAYMENT_RECORD, booking_id, amount, reason, payment_method)

    async def add_penalty(self, booking_id: str, amount: int, reason: str) -> ActionResult:
        return await self._folio(fd.PENALTY_FEE, booking_id, amount, reason)

    async def apply_discount(self, booking_id: str, amount: int, reason: str) -> ActionResult:
        return await self._folio(fd.DISCOUNT_APPLIED, booking_id, amount, reason)

    async def record_refund(self, booking_id: str, amount: int, reason: str = "") -> ActionResult:
        return await self._folio(fd.REFUND_RECORD, booking_id, amount, reason)

    async def _folio(
        self,
        record_type: str,
        booking_id: str,
        amount: int,
        reason: str,
        payment_method: Optional[str] = None,
    ) -> ActionResult:
        return await self._perform(
            record_type, booking_id,
            lambda: self._post_folio(
                FolioRequest(record_type, booking_id, amount, reason, payment_method)
            ),
        )

    async def _post_folio(self, req: FolioRequest) -> ActionResult:
        snapshot = await self._preflight()
        lineage = group_lineages(snapshot.records).find(req.booking_id)
        _enforce("booking_id", policies.lineage_must_exist_policy(req.booking_id, lineage))
        if req.record_type == fd.DISCOUNT_APPLIED:
            _enforce("amount", policies.discount_must_not_exceed_balance_policy(
                req.amount, compute_ledger(lineage).balance,
            ))

        extra = {"payment_method": req.payment_method} if req.payment_method else {}
        signed = -req.amount if req.record_type in (fd.REFUND_RECORD, fd.DISCOUNT_APPLIED) else req.amount
        created = await self._append(
            fd.build_folio_payload(
                req.record_type,
                booking_id=lineage.current.id,
                amount=req.amount,
                reason=req.reason,
                on_date=self._now(),
                **extra,
            ),
            financial_amount=signed,
        )
        ids = (created.id,)
        return ActionResult(req.record_type, ids, await self._resync(lineage.root_id, ids))

    # ══════════════════════════════════════════════════════════
    # HOUSEKEEPING
    # ══════════════════════════════════════════════════════════

    async def record_housekeeping(
        self,
        room_ids: Iterable[str],
        housekeeping_status: str,
        *,
        room_condition: str = "",
        maintenance_required: bool = False,
        housekeeper_name: str = "",
        notes: str = "",
    ) -> ActionResult:
        room_ids = tuple(room_ids)
        return await self._perform(
            "record_housekeeping", ",".join(room_ids),
            lambda: self._housekeeping(HousekeepingRequest(
                room_ids, housekeeping_status, room_condition,
                maintenance_required, housekeeper_name, notes,
            )),
        )

    async def _housekeeping(self, req: HousekeepingRequest) -> ActionResult:
        snapshot = await self._preflight()
        rooms = snapshot.room_map()
        for room_id in req.room_ids:
            _enforce("room_ids", policies.room_must_exist_policy(room_id, rooms))

        ids = []
        for room_id in req.room_ids:
            report = await self._append(
                fd.build_housekeeping_payload(
                    room_id=room_id,
                    room_number=rooms[room_id].room_number,
                    housekeeping_status=req.housekeeping_status,
                    report_date=self._now(),
                    room_condition=req.room_condition,
                    maintenance_required=req.maintenance_required,
                    housekeeper_name=req.housekeeper_name,
                    notes=req.notes,
                ),
            )
            ids.append(report.id)

        if req.housekeeping_status in CLEAN_REPORTS:
            ids.extend(await self._complete_transfers(snapshot, req.room_ids, ids[0]))
        return ActionResult("record_housekeeping", tuple(ids))

    async def _complete_transfers(self, snapshot: FrontDeskSnapshot, room_ids, first_id: str):
        """Mark transfers out of freshly cleaned rooms as completed, once."""
        completed = {
            r.transfer_id for r in snapshot.records if isinstance(r, TransferCompletion)
        }
        created = []
        for record in snapshot.records:
            if not isinstance(record, Transfer) or record.previous_room_id not in room_ids:
                continue
            if record.id in completed:
                continue
            try:
                marker = await self._append(
                    fd.build_transfer_completion_payload(
                        transfer_id=record.id,
                        booking_id=record.booking_id,
                        room_id=record.previous_room_id,
                        completed_at=self._now(),
                    ),
                )
            except FrontDeskError as exc:
                raise PartialWriteFailure(first_id, "transfer completion", exc) from exc
            completed.add(record.id)
            created.append(marker.id)
        return created

    # ══════════════════════════════════════════════════════════
    # RESERVATIONS
    # ══════════════════════════════════════════════════════════

    async def create_reservation(
        self,
        guest_name: str,
        room_id: str,
        check_in_date: date,
        check_out_date: date,
        *,
        start_time: str = "14:00",
        end_time: str = "11:00",
        deposit_amount: int = 0,
        guest_phone: str = "",
        notes: str = "",
    ) -> ActionResult:
        return await self._perform(
            "create_reservation", room_id,
            lambda: self._reserve(CreateReservationRequest(
                guest_name, room_id, check_in_date, check_out_date,
                start_time, end_time, deposit_amount, guest_phone, notes,
            )),
        )

    async def _reserve(self, req: CreateReservationRequest) -> ActionResult:
        snapshot = await self._preflight()
        rooms = snapshot.room_map()
        _enforce("room_id", policies.room_must_exist_policy(req.room_id, rooms))
        room = rooms[req.room_id]

        candidate = StayWindow.from_dates(
            req.check_in_date,
            req.check_out_date,
            check_in_time=parse_clock_time(req.start_time, self._settings.default_check_in_time),
            check_out_time=parse_clock_time(req.end_time, self._settings.default_check_out_time),
            tz=self._settings.tz,
        )
        index = group_lineages(snapshot.records)
        ensure_no_conflict(candidate, self._blockers(snapshot, index, req.room_id))

        today = self._today()
        status = determine_initial_status(req.check_in_date, self._session.role, today)
        created = await self._append(
            fd.build_reservation_payload(
                reservation_code=generate_reservation_code(today),
                guest={"name": req.guest_name, "phone": req.guest_phone},
                room_id=req.room_id,
                room_number=room.room_number,
                room_type=room.room_type,
                check_in_date=req.check_in_date,
                check_out_date=req.check_out_date,
                start_time=req.start_time,
                end_time=req.end_time,
                deposit_amount=req.deposit_amount,
                status=status.value,
                created_by_role=self._session.role,
                notes=req.notes,
            ),
            status=status,
            financial_amount=req.deposit_amount,
        )
        return ActionResult("create_reservation", (created.id,))

    async def convert_reservation(self, reservation_id: str) -> ActionResult:
        """Check the reserved guest in: new booking, reservation marked converted."""
        return await self._perform(
            "convert_reservation", reservation_id,
            lambda: self._convert(reservation_id),
        )

    async def _convert(self, reservation_id: str) -> ActionResult:
        if not reservation_id:
            raise ValidationError("reservation_id", "must be non-empty.")
        snapshot = await self._preflight()
        reservation = next(
            (r for r in current_reservations(snapshot.records)
             if reservation_id in (r.id, r.lineage_key)),
            None,
        )
        if reservation is None:
            raise ValidationError(
                "reservation_id", f"reservation '{reservation_id}' is not holding a room."
            )
        rooms = snapshot.room_map()
        _enforce("room_id", policies.room_must_exist_policy(reservation.room_id, rooms))
        room = rooms[reservation.room_id]

        window = reservation_window(
            reservation,
            tz=self._settings.tz,
            check_in_time=self._settings.default_check_in_time,
            check_out_time=self._settings.default_check_out_time,
        )
        if window is None:
            raise ValidationError("reservation_id", "reservation dates do not form a window.")
        index = group_lineages(snapshot.records)
        ensure_no_conflict(
            window,
            self._blockers(snapshot, index, reservation.room_id,
                           {reservation.id, reservation.lineage_key}),
        )

        nights = nights_between(reservation.check_in_date, reservation.check_out_date)
        rate = room.price_per_night
        booking = await self._append(
            fd.build_booking_payload(
                booking_id=self._new_id(),
                original_id=None,
                guest={"full_name": reservation.guest_name},
                room_id=reservation.room_id,
                check_in=reservation.check_in_date,
                check_out=reservation.check_out_date,
                room_rate=rate,
                nights=nights,
                paid_amount=reservation.deposit_amount,
                meta={"source_reservation_id": reservation.id},
            ),
            financial_amount=reservation.deposit_amount,
        )
        converted = dict(reservation.event.payload)
        converted.update({"status": "converted", "converted_to_booking_id": booking.id})
        try:
            version_id = await self._guarded(
                "convert reservation",
                self._event_log.edit_with_new_version(reservation.id, converted),
            )
        except FrontDeskError as exc:
            raise PartialWriteFailure(booking.id, "reservation conversion", exc) from exc
        ids = (booking.id, version_id)
        return ActionResult("convert_reservation", ids, await self._resync(booking.id, ids))

    # ══════════════════════════════════════════════════════════
    # RECORD MAINTENANCE
    # ══════════════════════════════════════════════════════════

    async def approve(self, record_id: str) -> ActionResult:
        return await self._perform("approve", record_id, lambda: self._approve(record_id))

    async def _approve(self, record_id: str) -> ActionResult:
        snapshot = await self._preflight()
        record = next((r for r in snapshot.records if r.id == record_id), None)
        index = group_lineages(snapshot.records)
        if isinstance(record, Reservation):
            window = reservation_window(
                record,
                tz=self._settings.tz,
                check_in_time=self._settings.default_check_in_time,
                check_out_time=self._settings.default_check_out_time,
            )
            if window is not None:
                ensure_no_conflict(window, self._blockers(
                    snapshot, index, record.room_id, {record.id, record.lineage_key},
                ))
        elif isinstance(record, Booking):
            ensure_no_conflict(
                self._stay_window(record.check_in, record.check_out),
                self._blockers(snapshot, index, record.room_id, {record.id, record.lineage_key}),
            )
        approved = await self._guarded("approve", self._event_log.approve(record_id))
        return ActionResult("approve", (approved.id,))

    async def soft_delete(self, record_id: str) -> ActionResult:
        return await self._perform("soft_delete", record_id, lambda: self._soft_delete(record_id))

    async def _soft_delete(self, record_id: str) -> ActionResult:
        if not await self._session.is_session_valid():
            raise SessionExpiredError()
        await self._guarded("soft_delete", self._event_log.soft_delete(record_id))
        return ActionResult("soft_delete", (record_id,))

    async def edit_record(self, record_id: str, payload: Mapping[str, Any]) -> ActionResult:
        return await self._perform(
            "edit_record", record_id, lambda: self._edit(record_id, payload),
        )

    async def _edit(self, record_id: str, payload: Mapping[str, Any]) -> ActionResult:
        if not isinstance(payload, Mapping) or not payload.get("type"):
            raise ValidationError("payload", "must be a mapping with a type tag.")
        if not await self._session.is_session_valid():
            raise SessionExpiredError()
        new_id = await self._guarded(
            "edit_with_new_version", self._event_log.edit_with_new_version(record_id, payload),
        )
        return ActionResult("edit_record", (new_id,))

    async def purge_record(self, record_id: str) -> ActionResult:
        """Hard delete with every dependent record. Callers gate this to admins."""
        return await self._perform("purge_record", record_id, lambda: self._purge(record_id))

    async def _purge(self, record_id: str) -> ActionResult:
        if not await self._session.is_session_valid():
            raise SessionExpiredError()
        removed = await self._guarded("hard_delete", self._event_log.hard_delete(record_id))
        logger.warning(f"Purged record {record_id} and {removed - 1} dependent records")
        return ActionResult("purge_record", (record_id,))
