"""Reconciliation and analytics API routes (read-only)."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ottalika.api.schemas import ReconciliationResponse, envelope
from ottalika.services import get_db
from ottalika.services.analytics_service import AnalyticsService
from ottalika.services.reconciliation_service import ReconciliationService

router = APIRouter(prefix="/analytics", tags=["analytics"])
reconciliation_router = APIRouter(prefix="/reconciliation", tags=["analytics"])


@reconciliation_router.get("")
async def monthly_reconciliation(
    building_id: int = Query(..., description="Building to reconcile"),
    month: str = Query(..., description="YYYY-MM"),
    db: Session = Depends(get_db),
):
    """
    Per-apartment collection classes and totals for one building and month.

    Returns:
        200: Reconciliation report
        404: Building not found
        422: Malformed month
    """
    report = ReconciliationService(db).get_monthly_reconciliation(building_id, month)
    return envelope(
        f"Reconciliation for {report.month.label()}",
        data=ReconciliationResponse.from_report(report),
    )


@router.get("/payment-patterns")
async def payment_patterns(db: Session = Depends(get_db)):
    return envelope("Payment patterns", data=AnalyticsService(db).get_payment_patterns())


@router.get("/predictive-metrics")
async def predictive_metrics(db: Session = Depends(get_db)):
    metrics = AnalyticsService(db).get_predictive_metrics()
    return envelope(f"Predictions for {len(metrics)} renters", data=metrics)


@router.get("/payment-trends")
async def payment_trends(
    months: int = Query(6, description="Number of months, including the current one"),
    db: Session = Depends(get_db),
):
    return envelope(
        f"Payment trends for the last {months} months",
        data=AnalyticsService(db).get_payment_trends(months=months),
    )


@router.get("/maintenance")
async def maintenance_analytics(
    months: int = Query(6, description="Only requests created in the last N months"),
    db: Session = Depends(get_db),
):
    return envelope(
        f"Maintenance analytics for the last {months} months",
        data=AnalyticsService(db).get_maintenance_analytics(months=months),
    )


@router.get("/occupancy")
async def occupancy(db: Session = Depends(get_db)):
    """Occupied and vacant units and expected monthly rent per building."""
    return envelope("Occupancy by building", data=AnalyticsService(db).get_occupancy())
