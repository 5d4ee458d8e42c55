"""Manager analytics derived from the payment ledger and complaint store.

All figures are recomputed from current rows on every call.
"""

import calendar
import logging
from collections import defaultdict
from datetime import date, datetime
from decimal import Decimal
from statistics import mean, pstdev
from typing import Dict, List

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from ottalika.models import (
    Building,
    ComplaintPriority,
    ConfirmationStatus,
    MaintenanceRequest,
    MonthKey,
    Payment,
    PaymentStatus,
    Renter,
    as_utc,
    utcnow,
)
from ottalika.services.errors import ValidationError

logger = logging.getLogger(__name__)

HIGH_RISK = "High Risk"
MEDIUM_RISK = "Medium Risk"
LOW_RISK = "Low Risk"

EARLY_PAYER = "Early Payer"
ON_TIME = "On Time"
OCCASIONALLY_LATE = "Occasionally Late"
CHRONICALLY_LATE = "Chronically Late"

RECOMMENDED_ACTIONS = {
    EARLY_PAYER: "No action needed; consider a loyalty incentive",
    ON_TIME: "Continue regular monitoring",
    OCCASIONALLY_LATE: "Send a reminder a few days before the due date",
    CHRONICALLY_LATE: "Escalate: schedule a payment plan discussion with the renter",
}

MAX_TREND_MONTHS = 24
DEFAULT_MAINTENANCE_MONTHS = 6


def classify_risk(late_percentage: float) -> str:
    """Late-payment risk category from the share of late payments."""
    if late_percentage > 50:
        return HIGH_RISK
    if late_percentage > 20:
        return MEDIUM_RISK
    return LOW_RISK


def classify_behavior(avg_days_delay: float) -> str:
    """Payment behavior label from the mean signed delay in days."""
    if avg_days_delay < 0:
        return EARLY_PAYER
    if avg_days_delay <= 2:
        return ON_TIME
    if avg_days_delay <= 10:
        return OCCASIONALLY_LATE
    return CHRONICALLY_LATE


def percentage(part: int, total: int) -> float:
    """Share of `part` in `total` as a percentage with two decimals."""
    if total == 0:
        return 0.0
    return round(part / total * 100, 2)


def _percent_change(current: Decimal, previous: Decimal) -> float:
    if previous <= 0:
        return 0.0
    return round(float((current - previous) / previous * 100), 1)


def months_before(moment: datetime, months: int) -> datetime:
    """The same day and time `months` calendar months earlier, clamped to month end."""
    key = MonthKey(moment.year, moment.month).shift(-months)
    day = min(moment.day, calendar.monthrange(key.year, key.month)[1])
    return moment.replace(year=key.year, month=key.month, day=day)


class AnalyticsService:
    """Late-payment risk, delay prediction, trends and maintenance figures."""

    def __init__(self, db: Session):
        self.db = db

    def _payments_by_renter(self) -> Dict[int, List[Payment]]:
        grouped: Dict[int, List[Payment]] = defaultdict(list)
        for payment in self.db.execute(select(Payment).order_by(Payment.month)).scalars():
            grouped[payment.renter_id].append(payment)
        return grouped

    def _renters(self, renter_ids) -> Dict[int, Renter]:
        if not renter_ids:
            return {}
        rows = self.db.execute(
            select(Renter).options(selectinload(Renter.apartment)).where(Renter.id.in_(renter_ids))
        ).scalars()
        return {r.id: r for r in rows}

    @staticmethod
    def _renter_fields(renter: Renter | None, renter_id: int) -> dict:
        return {
            "renter_id": renter_id,
            "name": renter.name if renter else None,
            "apartment_number": renter.apartment.apartment_number if renter and renter.apartment else None,
        }

    def get_payment_patterns(self) -> dict:
        """Late-payment risk per renter with at least one payment.

        A payment is late when it was paid after its due date. Former renters
        are scored on their full history too, not only current occupants.

        Returns:
            Dict with 'patterns' (sorted by late percentage, highest first) and 'summary'
        """
        grouped = self._payments_by_renter()
        renters = self._renters(list(grouped))

        patterns = []
        for renter_id, payments in grouped.items():
            total = len(payments)
            late = sum(1 for p in payments if p.is_paid_late)
            pct = percentage(late, total)
            patterns.append(
                {
                    **self._renter_fields(renters.get(renter_id), renter_id),
                    "total_payments": total,
                    "late_payments": late,
                    "late_payment_percentage": pct,
                    "risk_category": classify_risk(pct),
                }
            )
        patterns.sort(key=lambda p: (-p["late_payment_percentage"], p["renter_id"]))

        summary = {
            "total": len(patterns),
            "high_risk": sum(1 for p in patterns if p["risk_category"] == HIGH_RISK),
            "medium_risk": sum(1 for p in patterns if p["risk_category"] == MEDIUM_RISK),
            "low_risk": sum(1 for p in patterns if p["risk_category"] == LOW_RISK),
            "average_late_percentage": (
                round(mean(p["late_payment_percentage"] for p in patterns), 2) if patterns else 0.0
            ),
        }
        logger.debug(f"Payment patterns computed for {len(patterns)} renters")
        return {"patterns": patterns, "summary": summary}

    def get_predictive_metrics(self) -> List[dict]:
        """Delay statistics and advisory action per renter with paid records.

        Early payments count as negative delays; they are not clamped to zero.
        """
        grouped = self._payments_by_renter()
        renters = self._renters(list(grouped))

        metrics = []
        for renter_id, payments in grouped.items():
            delays = [p.days_delay for p in payments if p.days_delay is not None]
            if not delays:
                continue
            avg_delay = mean(delays)
            behavior = classify_behavior(avg_delay)
            late = sum(1 for d in delays if d > 0)
            metrics.append(
                {
                    **self._renter_fields(renters.get(renter_id), renter_id),
                    "paid_payments": len(delays),
                    "avg_days_delay": round(avg_delay, 1),
                    "delay_consistency": round(pstdev(delays), 1),
                    "payment_behavior": behavior,
                    "recommended_action": RECOMMENDED_ACTIONS[behavior],
                    "risk_level": classify_risk(
                        percentage(sum(1 for p in payments if p.is_paid_late), len(payments))
                    ),
                    "late_payments": late,
                }
            )
        metrics.sort(key=lambda m: (-m["avg_days_delay"], m["renter_id"]))
        return metrics

    def get_payment_trends(self, months: int = 6, today: date | None = None) -> dict:
        """Per-month collection figures for the last `months` months, oldest first.

        Raises:
            ValidationError: If months is outside 1..24
        """
        if not 1 <= months <= MAX_TREND_MONTHS:
            raise ValidationError(f"months must be within 1..{MAX_TREND_MONTHS}")
        today = today or utcnow().date()
        last = MonthKey.current(today)
        first = last.shift(-(months - 1))

        payments = self.db.execute(
            select(Payment)
            .options(selectinload(Payment.confirmation))
            .where(Payment.month >= first, Payment.month <= last)
        ).scalars()
        by_month: Dict[MonthKey, List[Payment]] = defaultdict(list)
        for payment in payments:
            by_month[payment.month].append(payment)

        trends = []
        running_total = Decimal("0")
        previous_total = Decimal("0")
        for offset in range(months):
            month = first.shift(offset)
            rows = by_month.get(month, [])
            statuses = [p.effective_status(today) for p in rows]
            paid_total = sum((p.amount for p in rows if p.status == PaymentStatus.PAID), Decimal("0"))
            verified_total = sum(
                (
                    p.amount
                    for p in rows
                    if p.confirmation is not None
                    and p.confirmation.status == ConfirmationStatus.VERIFIED
                ),
                Decimal("0"),
            )
            paid_count = statuses.count(PaymentStatus.PAID)
            running_total += paid_total
            trends.append(
                {
                    "month": str(month),
                    "label": month.label(),
                    "total_payments": len(rows),
                    "monthly_total": paid_total,
                    "verified_total": verified_total,
                    "paid_count": paid_count,
                    "pending_count": statuses.count(PaymentStatus.PENDING),
                    "overdue_count": statuses.count(PaymentStatus.OVERDUE),
                    "collection_rate": percentage(paid_count, len(rows)),
                    "running_total": running_total,
                    "growth_percentage": _percent_change(paid_total, previous_total),
                }
            )
            previous_total = paid_total

        return {
            "trends": trends,
            "summary": {
                "total_collected": running_total,
                "average_monthly": (running_total / months).quantize(Decimal("0.01")),
            },
        }

    def get_maintenance_analytics(
        self, months: int = DEFAULT_MAINTENANCE_MONTHS, now: datetime | None = None
    ) -> dict:
        """Request count and average days to resolve per priority, urgent first.

        Only requests created in the last `months` months are counted. Open
        requests are measured up to `now`.

        Raises:
            ValidationError: If months is outside 1..24
        """
        if not 1 <= months <= MAX_TREND_MONTHS:
            raise ValidationError(f"months must be within 1..{MAX_TREND_MONTHS}")
        now = as_utc(now) or utcnow()
        since = months_before(now, months)

        buckets: Dict[ComplaintPriority, List[MaintenanceRequest]] = defaultdict(list)
        for request in self.db.execute(select(MaintenanceRequest)).scalars():
            if as_utc(request.created_at) >= since:
                buckets[request.priority].append(request)

        by_priority = {}
        for priority in reversed(list(ComplaintPriority)):
            requests = buckets.get(priority)
            if not requests:
                continue
            days = [
                ((as_utc(r.completed_at) or now) - as_utc(r.created_at)).total_seconds() / 86400
                for r in requests
            ]
            by_priority[priority.value] = {
                "request_count": len(requests),
                "open_count": sum(1 for r in requests if r.is_open),
                "avg_days_to_resolve": round(mean(days), 1),
            }
        return {
            "by_priority": by_priority,
            "total": sum(len(v) for v in buckets.values()),
            "since": since.date(),
        }

    def get_occupancy(self) -> dict:
        """Occupied and vacant units and the rent they bring in, per building.

        Returns:
            Dict with 'buildings' (highest occupancy first) and 'summary'
        """
        buildings = self.db.execute(
            select(Building).options(selectinload(Building.apartments)).order_by(Building.id)
        ).scalars()

        rows = []
        for building in buildings:
            occupied = [a for a in building.apartments if a.is_occupied]
            total = len(building.apartments)
            rows.append(
                {
                    "building_id": building.id,
                    "building_name": building.name,
                    "total_units": total,
                    "occupied_units": len(occupied),
                    "vacant_units": total - len(occupied),
                    "occupancy_rate": percentage(len(occupied), total),
                    "monthly_revenue": sum((a.rent_amount for a in occupied), Decimal("0")),
                }
            )
        rows.sort(key=lambda r: (-r["occupancy_rate"], r["building_id"]))

        return {
            "buildings": rows,
            "summary": {
                "total_buildings": len(rows),
                "total_units": sum(r["total_units"] for r in rows),
                "occupied_units": sum(r["occupied_units"] for r in rows),
                "average_occupancy": round(mean(r["occupancy_rate"] for r in rows), 2) if rows else 0.0,
                "monthly_revenue": sum((r["monthly_revenue"] for r in rows), Decimal("0")),
            },
        }


__all__ = [
    "AnalyticsService",
    "RECOMMENDED_ACTIONS",
    "classify_behavior",
    "classify_risk",
    "months_before",
    "percentage",
]
