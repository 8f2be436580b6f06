"""
V1 API router aggregator: wires all endpoint modules together.
"""

from fastapi import APIRouter

from app.api.v1.endpoints import attendance, employees, reports, settings

api_router = APIRouter()

# Record, correct, lock, list, history
api_router.include_router(attendance.router)

# Employees and shifts
api_router.include_router(employees.router)

# Monthly summaries, payroll, health
api_router.include_router(reports.router)

# Attendance policy
api_router.include_router(settings.router)
