# bookshop/services/reporting.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from math import ceil

from sqlalchemy import and_, func, or_

from bookshop.extensions import db
from bookshop.models import PurchasedOrder
from bookshop.models.order import ORDER_STATUSES

MAX_PAGE_SIZE = 100

SORT_COLUMNS = {
    "createdAt": PurchasedOrder.created_at,
    "total": PurchasedOrder.total,
    "status": PurchasedOrder.status,
    "orderNumber": PurchasedOrder.order_id,
}


@dataclass
class OrderFilters:
    user_id: int | None = None
    # guest orders placed under this address count as the user's own
    owner_email: str | None = None
    status: str | None = None
    payment_method: str | None = None
    order_type: str | None = None
    search: str | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None

    @classmethod
    def from_args(cls, args) -> "OrderFilters":
        def _s(key):
            return (args.get(key) or "").strip() or None

        return cls(
            user_id=args.get("userId", type=int),
            status=_s("status"),
            payment_method=_s("paymentMethod"),
            order_type=_s("orderType"),
            search=_s("search"),
            date_from=_parse_date(_s("startDate")),
            date_to=_parse_date(_s("endDate")),
        )

    def apply(self, query):
        if self.user_id is not None and self.owner_email:
            query = query.filter(or_(
                PurchasedOrder.user_id == self.user_id,
                and_(PurchasedOrder.user_id.is_(None), PurchasedOrder.customer_email == self.owner_email),
            ))
        elif self.user_id is not None:
            query = query.filter(PurchasedOrder.user_id == self.user_id)
        if self.status:
            query = query.filter(PurchasedOrder.status == self.status)
        if self.payment_method:
            query = query.filter(PurchasedOrder.payment_method == self.payment_method)
        if self.order_type:
            query = query.filter(PurchasedOrder.order_type == self.order_type)
        if self.search:
            like = f"%{self.search}%"
            query = query.filter(or_(
                PurchasedOrder.order_id.ilike(like),
                PurchasedOrder.customer_name.ilike(like),
                PurchasedOrder.customer_email.ilike(like),
                PurchasedOrder.customer_phone.ilike(like),
            ))
        if self.date_from:
            query = query.filter(PurchasedOrder.created_at >= self.date_from)
        if self.date_to:
            query = query.filter(PurchasedOrder.created_at <= self.date_to)
        return query


def _parse_date(raw: str | None) -> datetime | None:
    if not raw:
        return None
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00")).replace(tzinfo=None)
    except ValueError:
        return None


@dataclass
class OrderPage:
    items: list
    pagination: dict


def list_orders(filters: OrderFilters | None = None, page: int = 1, limit: int = 10,
                sort_by: str = "createdAt", sort_order: str = "desc") -> OrderPage:
    filters = filters or OrderFilters()
    page = max(int(page or 1), 1)
    limit = min(max(int(limit or 10), 1), MAX_PAGE_SIZE)

    q = filters.apply(PurchasedOrder.query)
    sort_col = SORT_COLUMNS.get(sort_by, SORT_COLUMNS["createdAt"])
    # insertion order breaks ties
    q = q.order_by(sort_col.asc() if sort_order == "asc" else sort_col.desc(), PurchasedOrder.id.asc())

    total = q.count()
    items = q.limit(limit).offset((page - 1) * limit).all()
    total_pages = ceil(total / limit)

    return OrderPage(
        items=items,
        pagination={
            "currentPage": page,
            "totalPages": total_pages,
            "totalItems": total,
            "itemsPerPage": limit,
            "hasNextPage": page < total_pages,
            "hasPrevPage": page > 1,
        },
    )


def summarize_orders(filters: OrderFilters | None = None) -> dict:
    """Totals over the filtered set, independent of pagination."""
    filters = filters or OrderFilters()
    q = filters.apply(
        db.session.query(PurchasedOrder.status, func.count(PurchasedOrder.id), func.sum(PurchasedOrder.total))
    ).group_by(PurchasedOrder.status)

    status_counts = {status: 0 for status in ORDER_STATUSES}
    total_orders = 0
    revenue = Decimal("0")
    for status, count, amount in q.all():
        status_counts[status] = count
        total_orders += count
        revenue += Decimal(str(amount or 0))

    return {
        "totalOrders": total_orders,
        "totalRevenue": float(revenue),
        "statusCounts": status_counts,
        "averageOrderValue": float(revenue / total_orders) if total_orders else 0.0,
    }


def get_order_stats() -> dict:
    rows = (
        db.session.query(
            PurchasedOrder.status,
            func.count(PurchasedOrder.id),
            func.coalesce(func.sum(PurchasedOrder.total), 0),
        )
        .group_by(PurchasedOrder.status)
        .all()
    )
    by_status = [
        {"status": status, "count": count, "totalAmount": float(amount)}
        for status, count, amount in rows
    ]
    total_orders, total_revenue = db.session.query(
        func.count(PurchasedOrder.id),
        func.coalesce(func.sum(PurchasedOrder.total), 0),
    ).one()
    return {
        "byStatus": by_status,
        "totalOrders": total_orders,
        "totalRevenue": float(total_revenue),
    }


def find_by_status(status: str) -> list[PurchasedOrder]:
    return PurchasedOrder.query.filter_by(status=status).order_by(PurchasedOrder.created_at.desc()).all()


def find_by_payment_method(method: str) -> list[PurchasedOrder]:
    return (
        PurchasedOrder.query.filter_by(payment_method=method)
        .order_by(PurchasedOrder.created_at.desc())
        .all()
    )


def find_shipping_orders() -> list[PurchasedOrder]:
    return (
        PurchasedOrder.query.filter(PurchasedOrder.shipping_enabled.is_(True))
        .order_by(PurchasedOrder.created_at.desc())
        .all()
    )
