"""Staff commission aggregation over revenue transactions"""

from dataclasses import asdict, dataclass, field
from typing import Iterable, Optional

from ...shared.numbers import safe_ratio
from ..appointments.series import get_field

REVENUE_TYPE = "receita"


@dataclass
class CommissionLine:
    transaction_id: str
    date: object
    description: str
    amount: float
    commission_rate: float
    commission_amount: float
    staff_id: Optional[str]
    staff_name: str


@dataclass
class StaffCommission:
    staff_id: str
    name: str
    commission_rate: float
    total_revenue: float = 0.0
    total_commission: float = 0.0
    transactions_count: int = 0
    avg_commission: float = 0.0


@dataclass
class CommissionReport:
    staff: list[StaffCommission] = field(default_factory=list)
    transactions: list[CommissionLine] = field(default_factory=list)
    total_revenue: float = 0.0
    total_commissions: float = 0.0
    avg_commission_rate: float = 0.0
    transactions_count: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


def commission_for(transaction, staff_rate: Optional[float]) -> tuple[float, float]:
    """(rate, amount): stored values win, otherwise the staff rate applies"""
    amount = float(get_field(transaction, "amount") or 0)
    rate = float(get_field(transaction, "commission_rate") or staff_rate or 0)
    stored = get_field(transaction, "commission_amount")
    commission = float(stored) if stored else amount * rate / 100
    return rate, commission


def build_commission_report(transactions: Iterable, staff: Iterable) -> CommissionReport:
    staff_by_id = {get_field(s, "id"): s for s in staff}
    per_staff: dict[str, StaffCommission] = {}
    report = CommissionReport()

    for t in transactions:
        if get_field(t, "type") not in (None, REVENUE_TYPE):
            continue
        staff_id = get_field(t, "staff_id")
        member = staff_by_id.get(staff_id)
        name = get_field(member, "name") if member is not None else None
        rate, commission = commission_for(t, get_field(member, "commission_rate") if member is not None else None)
        amount = float(get_field(t, "amount") or 0)

        if staff_id:
            entry = per_staff.get(staff_id)
            if entry is None:
                entry = StaffCommission(staff_id=staff_id, name=name or "N/A", commission_rate=rate)
                per_staff[staff_id] = entry
            entry.total_revenue += amount
            entry.total_commission += commission
            entry.transactions_count += 1

        report.transactions.append(
            CommissionLine(
                transaction_id=get_field(t, "id"),
                date=get_field(t, "transaction_date"),
                description=get_field(t, "description") or "Serviço",
                amount=amount,
                commission_rate=rate,
                commission_amount=commission,
                staff_id=staff_id,
                staff_name=name or "N/A",
            )
        )

    for entry in per_staff.values():
        entry.avg_commission = safe_ratio(entry.total_commission, entry.transactions_count)

    report.staff = sorted(per_staff.values(), key=lambda s: s.total_commission, reverse=True)
    report.total_revenue = sum(line.amount for line in report.transactions)
    report.total_commissions = sum(line.commission_amount for line in report.transactions)
    report.avg_commission_rate = safe_ratio(report.total_commissions, report.total_revenue) * 100
    report.transactions_count = len(report.transactions)
    return report
