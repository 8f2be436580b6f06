"""
Reporting endpoints: monthly summaries, payroll derivation and health.

Both reports are recomputed from a fresh scan of the facts on every call
and carry the ledger revision they were computed at.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.deps import get_db, get_ledger
from app.core.config import settings
from app.db.schema import schema_status
from app.schemas.attendance import (HealthResponse, MonthlySummaryRead,
                                    PayrollDerivationRead)
from app.services.aggregation import MonthlySummary
from app.services.ledger import AttendanceLedger
from app.services.payroll import PayrollDerivation

router = APIRouter(tags=["reports"])
logger = logging.getLogger(__name__)


@router.get("/reports/monthly/{employee_id}/{month}", response_model=MonthlySummaryRead)
async def monthly_summary(
    employee_id: int,
    month: str,
    ledger: AttendanceLedger = Depends(get_ledger),
) -> MonthlySummary:
    """Per-status day counts and minute totals for one employee and month (YYYY-MM)."""
    return await ledger.get_monthly_summary(employee_id, month)


@router.get("/reports/financials/{employee_id}/{month}", response_model=PayrollDerivationRead)
async def financials(
    employee_id: int,
    month: str,
    daily_rate: Decimal = Query(..., ge=0),
    late_rate_per_minute: Decimal | None = Query(default=None, ge=0),
    ledger: AttendanceLedger = Depends(get_ledger),
) -> PayrollDerivation:
    """Amount due for the month; the per-minute late rate defaults to the tenant policy."""
    return await ledger.calculate_financials(employee_id, month, daily_rate, late_rate_per_minute)


# ── Health ──────────────────────────────────────────────────────────
@router.get("/health", response_model=HealthResponse)
async def health(db: AsyncSession = Depends(get_db)) -> HealthResponse:
    """Public health check: DB, Redis and ledger schema."""
    result = HealthResponse(db=False, redis=False, schema_provisioned=schema_status.facts_provisioned)

    try:
        await db.execute(select(1))
        result.db = True
    except Exception as e:
        logger.error("Health check DB failure: %s", e)

    try:
        import redis.asyncio as aioredis

        r = aioredis.from_url(settings.REDIS_URL)
        await r.ping()
        await r.aclose()
        result.redis = True
    except Exception as e:
        logger.error("Health check Redis failure: %s", e)

    return result
