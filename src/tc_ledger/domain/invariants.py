"""Whole-store ledger invariant audit.

INV-1: no UserBalance.credits < 0
INV-2: no Skill.available_slots < 0
INV-3: every completed booking has exactly one completed spent/earned pair,
       equal to booking.credits, requester → provider; bookings in any other
       status have no completed entries
INV-5: at most one review per booking; booking.reviewed matches; skill
       review_count matches its reviews
INV-D: double entry — completed spent total == completed earned total
INV-C: conservation — with a known opening balance, every balance equals
       opening + completed earned - completed spent
"""

import logging
from collections import Counter, defaultdict

from src.tc_common.enums import BookingStatus, LedgerEntryKind, LedgerEntryStatus
from src.tc_ledger.domain.models import LedgerEntry
from src.tc_ledger.domain.repository import LedgerStoreProtocol

logger = logging.getLogger(__name__)


async def verify_ledger_invariants(
    store: LedgerStoreProtocol, starting_credits: int | None = None
) -> list[str]:
    """Return a list of violation strings (empty when the store is consistent)."""
    violations: list[str] = []

    balances = await store.all_balances()
    for balance in balances:
        if balance.credits < 0:
            violations.append(f"INV-1 violated: user {balance.user_id} has {balance.credits} credits")

    skills = await store.all_skills()
    for skill in skills:
        if skill.available_slots < 0:
            violations.append(
                f"INV-2 violated: skill {skill.id} has {skill.available_slots} slots"
            )

    entries = await store.all_entries()
    by_booking: dict[str, list[LedgerEntry]] = defaultdict(list)
    for entry in entries:
        if entry.status == LedgerEntryStatus.COMPLETED:
            by_booking[entry.booking_id].append(entry)

    bookings = await store.all_bookings()
    for booking in bookings:
        completed = by_booking.get(booking.id, [])
        if booking.status != BookingStatus.COMPLETED:
            if completed:
                violations.append(
                    f"INV-3 violated: booking {booking.id} is {booking.status.value} "
                    f"but has {len(completed)} completed ledger entries"
                )
            continue
        kinds = sorted(e.kind.value for e in completed)
        if kinds != [LedgerEntryKind.EARNED.value, LedgerEntryKind.SPENT.value]:
            violations.append(
                f"INV-3 violated: completed booking {booking.id} has entries {kinds}"
            )
            continue
        for entry in completed:
            if entry.credits != booking.credits:
                violations.append(
                    f"INV-3 violated: entry {entry.id} moved {entry.credits} "
                    f"!= booking {booking.id} credits {booking.credits}"
                )
            if entry.from_user != booking.requester_id or entry.to_user != booking.provider_id:
                violations.append(
                    f"INV-3 violated: entry {entry.id} parties do not match booking {booking.id}"
                )

    spent = sum(
        e.credits for e in entries
        if e.status == LedgerEntryStatus.COMPLETED and e.kind == LedgerEntryKind.SPENT
    )
    earned = sum(
        e.credits for e in entries
        if e.status == LedgerEntryStatus.COMPLETED and e.kind == LedgerEntryKind.EARNED
    )
    if spent != earned:
        violations.append(f"INV-D violated: spent total {spent} != earned total {earned}")

    if starting_credits is not None:
        net: Counter[str] = Counter()
        for entry in entries:
            if entry.status != LedgerEntryStatus.COMPLETED:
                continue
            if entry.kind == LedgerEntryKind.EARNED:
                net[entry.to_user] += entry.credits
            else:
                net[entry.from_user] -= entry.credits
        for balance in balances:
            expected = starting_credits + net.get(balance.user_id, 0)
            if balance.credits != expected:
                violations.append(
                    f"INV-C violated: user {balance.user_id} holds {balance.credits}, "
                    f"ledger implies {expected}"
                )

    reviews = await store.all_reviews()
    per_booking = Counter(r.booking_id for r in reviews)
    for booking_id, count in per_booking.items():
        if count > 1:
            violations.append(f"INV-5 violated: booking {booking_id} has {count} reviews")
    for booking in bookings:
        if booking.reviewed != (booking.id in per_booking):
            violations.append(
                f"INV-5 violated: booking {booking.id} reviewed={booking.reviewed} "
                f"but has {per_booking.get(booking.id, 0)} reviews"
            )
    per_skill = Counter(r.skill_id for r in reviews)
    for skill in skills:
        if skill.review_count != per_skill.get(skill.id, 0):
            violations.append(
                f"INV-5 violated: skill {skill.id} review_count={skill.review_count} "
                f"but has {per_skill.get(skill.id, 0)} reviews"
            )

    for msg in violations:
        logger.error(msg)
    return violations
