import logging
from datetime import datetime
from typing import Any, Dict, List

from pymongo.errors import PyMongoError

from errors import InternalError
from stores import Stores, oid

logger = logging.getLogger(__name__)

MONTH_NAMES = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
BREAKDOWN_STATUSES = ("paid", "pending", "draft")


class DashboardService:
    def __init__(self, stores: Stores):
        self.stores = stores

    def summary(self, owner_id: str) -> Dict[str, Any]:
        """Revenue, invoice status and headcount statistics for one owner.

        Either every figure is computed or an InternalError is raised; a
        partially filled ``stats`` is never returned.
        """
        try:
            return self._summary(owner_id)
        except PyMongoError:
            logger.exception("Dashboard aggregation failed for owner %s", owner_id)
            raise InternalError("Failed to fetch dashboard data")

    def _summary(self, owner_id: str) -> Dict[str, Any]:
        owner = oid(owner_id)
        invoices = self.stores.invoices

        def sum_paid() -> float:
            pipeline = [
                {"$match": {"ownerId": owner, "status": "paid"}},
                {"$group": {"_id": None, "sum": {"$sum": "$amount"}}},
            ]
            res = list(invoices.collection.aggregate(pipeline))
            return float(res[0]["sum"]) if res else 0.0

        # Grouped per stored YYYY-MM-DD string, then folded into calendar months
        # regardless of year.
        pipeline_days = [
            {"$match": {"ownerId": owner, "status": "paid"}},
            {"$group": {"_id": "$date", "revenue": {"$sum": "$amount"}}},
        ]
        by_month: Dict[int, float] = {}
        for row in invoices.collection.aggregate(pipeline_days):
            month = int(str(row["_id"])[5:7])
            by_month[month] = by_month.get(month, 0) + row["revenue"]
        revenue_data = [
            {"month": MONTH_NAMES[month - 1], "revenue": revenue} for month, revenue in sorted(by_month.items())
        ]

        pipeline_status = [
            {"$match": {"ownerId": owner, "status": {"$in": list(BREAKDOWN_STATUSES)}}},
            {"$group": {"_id": "$status", "sum": {"$sum": "$amount"}}},
        ]
        breakdown = {status: 0 for status in BREAKDOWN_STATUSES}
        for row in invoices.collection.aggregate(pipeline_status):
            breakdown[row["_id"]] = row["sum"]

        employees = self.stores.employees
        stats = {
            "totalRevenue": sum_paid(),
            **breakdown,
            "totalEmployees": employees.count(owner_id),
            "activeEmployees": employees.count(owner_id, status="active"),
            "inactiveEmployees": employees.count(owner_id, status="inactive"),
            "managers": employees.count(owner_id, role="manager"),
            "admins": employees.count(owner_id, role="admin"),
            "totalCustomers": self.stores.customers.count(owner_id),
            "totalProducts": self.stores.products.count(owner_id),
            "totalInvoices": invoices.count(owner_id),
        }
        return {"stats": stats, "revenueData": revenue_data}

    def recent_activity(self, owner_id: str, per_type: int = 2, limit: int = 5) -> List[Dict[str, Any]]:
        # Best effort: a broken feed must not take the dashboard page down with it.
        try:
            return self._recent_activity(owner_id, per_type, limit)
        except Exception:
            logger.exception("Activity feed failed for owner %s", owner_id)
            return []

    def _recent_activity(self, owner_id: str, per_type: int, limit: int) -> List[Dict[str, Any]]:
        activities: List[Dict[str, Any]] = []
        for c in self.stores.customers.recent(owner_id, per_type):
            activities.append(_activity("customer", "added", c, f'New customer "{c.get("name")}" registered'))
        for i in self.stores.invoices.recent(owner_id, per_type):
            details = f'Invoice for "{i.get("recipient")}" (${_number(i.get("amount"))}) - {i.get("status")}'
            activities.append(_activity("invoice", "created", i, details))
        for p in self.stores.products.recent(owner_id, per_type):
            activities.append(_activity("product", "updated", p, f'Product "{p.get("name")}" stock: {_number(p.get("stock"))}'))

        activities.sort(key=lambda a: a["time"], reverse=True)
        return activities[:limit]


def _activity(kind: str, action: str, record: Dict[str, Any], details: str) -> Dict[str, Any]:
    time: datetime = record["createdAt"]
    return {"id": f"{kind}-{record['id']}", "type": kind, "action": action, "details": details, "time": time}


def _number(value: Any) -> str:
    # 250.0 reads as "250", 99.5 stays "99.5"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
