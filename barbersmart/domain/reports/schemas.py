"""Report domain schemas"""

from datetime import date
from typing import Optional

from pydantic import BaseModel


class TopService(BaseModel):
    name: str
    count: int


class TopStaff(BaseModel):
    name: str
    revenue: float
    appointments: int


class UnitMetricsResponse(BaseModel):
    unit_id: str
    name: str
    revenue: float
    appointments: int
    completed: int
    cancelled: int
    confirmed_or_completed: int
    active_clients: int
    new_clients: int
    average_ticket: float
    occupancy_rate: int
    rating: float
    top_services: list[TopService] = []
    top_staff: list[TopStaff] = []

    class Config:
        from_attributes = True


class RollupTotalsResponse(BaseModel):
    revenue: float
    appointments: int
    completed: int
    cancelled: int
    active_clients: int
    new_clients: int
    occupancy_rate: int
    average_rating: float
    best_unit: str
    worst_unit: str

    class Config:
        from_attributes = True


class MultiUnitReportResponse(BaseModel):
    """Roll-up plus the parameters it was computed for"""

    period: str
    start_date: date
    end_date: date
    unit_ids: list[str]
    units: list[UnitMetricsResponse]
    totals: RollupTotalsResponse


class UnitDashboard(BaseModel):
    unit_id: str
    name: str
    today_appointments: int
    today_revenue: float
    month_revenue: float
    month_appointments: int
    occupancy_rate: int


class DashboardResponse(BaseModel):
    date: date
    units: list[UnitDashboard]
    total_today_revenue: float
    total_month_revenue: float
    total_today_appointments: int


class StaffCommissionResponse(BaseModel):
    staff_id: str
    name: str
    commission_rate: float
    total_revenue: float
    total_commission: float
    transactions_count: int
    avg_commission: float


class CommissionLineResponse(BaseModel):
    transaction_id: str
    date: date
    description: str
    amount: float
    commission_rate: float
    commission_amount: float
    staff_id: Optional[str] = None
    staff_name: str


class CommissionReportResponse(BaseModel):
    start_date: date
    end_date: date
    staff_id: Optional[str] = None
    staff: list[StaffCommissionResponse]
    transactions: list[CommissionLineResponse]
    total_revenue: float
    total_commissions: float
    avg_commission_rate: float
    transactions_count: int
