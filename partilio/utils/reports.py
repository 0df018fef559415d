# partilio/utils/reports.py
"""
Aggregations behind the dashboard, the reports and the per-entity stats.

Every function works on rows the caller already loaded: payments need their
``expense`` (with category, buyer, payer and splits) available, which the
ORM relationships load eagerly. Nothing here touches the database.
"""
from collections import OrderedDict
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from partilio.models.expense import ExpenseType, PaymentStatus
from partilio.utils.financial import (
    HUNDRED, ZERO, clamp_day, month_name, percentage_change, round_money, shift_month, sum_money,
)
from partilio.utils.splits import calculate_splits

UNCATEGORIZED = "Uncategorized"
UPCOMING_LIMIT = 10
GROUP_BY_OPTIONS = ("month", "quarter", "year")


# ────────────────────────────────────────────────────────────────────────────────
# HELPERS – COMMON
# ────────────────────────────────────────────────────────────────────────────────
def _ratio(part: Decimal, whole: Decimal) -> float:
    """part / whole as a percentage rounded to two places; 0 when whole is 0."""
    if not whole:
        return 0.0
    return float(round_money(Decimal(part) / Decimal(whole) * HUNDRED))


def _status_bucket(status: PaymentStatus) -> str:
    # FUTURE obligations count as pending in every summary
    status = PaymentStatus(status)
    if status == PaymentStatus.PAID:
        return "paid_amount"
    if status == PaymentStatus.OVERDUE:
        return "overdue_amount"
    return "pending_amount"


def _empty_totals() -> Dict[str, Any]:
    return {"total_amount": ZERO, "paid_amount": ZERO, "pending_amount": ZERO, "overdue_amount": ZERO}


def _add(totals: Dict[str, Any], status: PaymentStatus, amount: Decimal) -> None:
    totals["total_amount"] += amount
    totals[_status_bucket(status)] += amount


def _rounded(totals: Dict[str, Any]) -> Dict[str, Any]:
    return {k: round_money(v) if isinstance(v, Decimal) else v for k, v in totals.items()}


def end_of_month(year: int, month: int) -> date:
    return clamp_day(year, month, 31)


def previous_period(month: int, year: int) -> Tuple[int, int]:
    prev_year, prev_month = shift_month(year, month, -1)
    return prev_month, prev_year


def change_direction(change: float) -> str:
    if change > 0:
        return "up"
    if change < 0:
        return "down"
    return "stable"


def monthly_total(payments: Iterable[Any]) -> Decimal:
    return sum_money(p.amount for p in payments)


def payer_shares(payment: Any) -> List[Tuple[Any, Decimal]]:
    """
    Who owes what of one payment.

    Divided expenses are split with the payment amount as base, so the shares
    always add up to the payment. Anything else belongs to the expense's payer,
    falling back to the buyer.
    """
    expense = payment.expense
    amount = Decimal(payment.amount)
    if expense.is_divided and expense.splits:
        by_payer = {str(s.payer_id): s.payer for s in expense.splits}
        shares = calculate_splits(amount, expense.splits)
        return [(by_payer[str(share.payer_id)], share.amount) for share in shares]
    owner = expense.payer if expense.payer_id else expense.buyer
    return [(owner, amount)] if owner is not None else []


def _category_key(expense: Any) -> Tuple[Optional[str], str, Optional[str]]:
    category = expense.category
    if category is None:
        return None, UNCATEGORIZED, None
    return str(category.id), category.name, category.color


# ────────────────────────────────────────────────────────────────────────────────
# DASHBOARD
# ────────────────────────────────────────────────────────────────────────────────
def dashboard_summary(payments: Sequence[Any]) -> Dict[str, Any]:
    totals = _empty_totals()
    payers: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()

    for payment in payments:
        amount = Decimal(payment.amount)
        _add(totals, payment.status, amount)

        for payer, share in payer_shares(payment):
            entry = payers.setdefault(
                str(payer.id),
                {"payer_id": str(payer.id), "payer_name": payer.name, "payer_color": payer.color, **_empty_totals()},
            )
            _add(entry, payment.status, share)

    return {
        **_rounded(totals),
        "payment_count": len(payments),
        "payer_breakdown": [_rounded(entry) for entry in payers.values()],
    }


def category_breakdown(payments: Iterable[Any]) -> List[Dict[str, Any]]:
    categories: Dict[Optional[str], Dict[str, Any]] = {}
    for payment in payments:
        category_id, name, color = _category_key(payment.expense)
        entry = categories.setdefault(
            category_id,
            {
                "category_id": category_id,
                "category_name": name,
                "category_color": color,
                "total_amount": ZERO,
                "expense_ids": set(),
                "payment_count": 0,
            },
        )
        entry["total_amount"] += Decimal(payment.amount)
        entry["expense_ids"].add(payment.expense_id)
        entry["payment_count"] += 1

    breakdown = []
    grand_total = sum((c["total_amount"] for c in categories.values()), ZERO)
    for entry in categories.values():
        expense_ids = entry.pop("expense_ids")
        entry["expense_count"] = len(expense_ids)
        entry["total_amount"] = round_money(entry["total_amount"])
        entry["percentage"] = _ratio(entry["total_amount"], grand_total)
        breakdown.append(entry)
    return sorted(breakdown, key=lambda c: c["total_amount"], reverse=True)


def upcoming_dues(
    payments: Iterable[Any], today: date, until: date, limit: int = UPCOMING_LIMIT
) -> List[Dict[str, Any]]:
    """Unpaid payments due between today and `until`, soonest first."""
    due = [
        p for p in payments
        if PaymentStatus(p.status) != PaymentStatus.PAID and today <= p.due_date <= until
    ]
    due.sort(key=lambda p: p.due_date)
    return [
        {
            "payment_id": str(p.id),
            "expense_id": str(p.expense_id),
            "description": p.expense.description,
            "supplier": p.expense.supplier,
            "amount": round_money(p.amount),
            "due_date": p.due_date,
            "status": PaymentStatus(p.status).value,
            "days_until_due": (p.due_date - today).days,
        }
        for p in due[:limit]
    ]


def trends(current: Sequence[Any], previous: Sequence[Any]) -> Dict[str, Any]:
    current_total = monthly_total(current)
    previous_total = monthly_total(previous)

    current_by_category = {c["category_id"]: c for c in category_breakdown(current)}
    previous_by_category = {c["category_id"]: c for c in category_breakdown(previous)}

    category_trends = []
    for category_id in set(current_by_category) | set(previous_by_category):
        now_entry = current_by_category.get(category_id)
        before_entry = previous_by_category.get(category_id)
        now_amount = now_entry["total_amount"] if now_entry else ZERO
        before_amount = before_entry["total_amount"] if before_entry else ZERO
        category_trends.append({
            "category_id": category_id,
            "category_name": (now_entry or before_entry)["category_name"],
            "current_month": now_amount,
            "previous_month": before_amount,
            "percentage_change": percentage_change(before_amount, now_amount),
        })
    category_trends.sort(key=lambda t: t["current_month"], reverse=True)

    return {
        "monthly_comparison": {
            "current_month": current_total,
            "previous_month": previous_total,
            "percentage_change": percentage_change(previous_total, current_total),
        },
        "category_trends": category_trends,
    }


def period_label(month: int, year: int) -> str:
    return f"{month_name(month)} {year}"


# ────────────────────────────────────────────────────────────────────────────────
# REPORTS
# ────────────────────────────────────────────────────────────────────────────────
def period_key(month: int, year: int, group_by: str = "month") -> str:
    if group_by == "year":
        return str(year)
    if group_by == "quarter":
        return f"{year}-Q{(month - 1) // 3 + 1}"
    return f"{year}-{month:02d}"


def expense_report(payments: Iterable[Any], group_by: str = "month") -> Dict[str, Any]:
    if group_by not in GROUP_BY_OPTIONS:
        raise ValueError(f"group_by must be one of {', '.join(GROUP_BY_OPTIONS)}")

    groups: Dict[str, Dict[str, Any]] = {}
    expense_ids = set()
    for payment in payments:
        key = period_key(payment.month, payment.year, group_by)
        group = groups.setdefault(
            key, {"period": key, **_empty_totals(), "payment_count": 0, "categories": {}, "payers": {}}
        )
        amount = Decimal(payment.amount)
        _add(group, payment.status, amount)
        group["payment_count"] += 1
        expense_ids.add(payment.expense_id)

        _, category_name, _ = _category_key(payment.expense)
        group["categories"][category_name] = group["categories"].get(category_name, ZERO) + amount
        buyer_name = payment.expense.buyer.name if payment.expense.buyer else None
        if buyer_name:
            group["payers"][buyer_name] = group["payers"].get(buyer_name, ZERO) + amount

    periods = []
    for key in sorted(groups):
        group = groups[key]
        group["categories"] = sorted(
            ({"name": n, "amount": round_money(a)} for n, a in group["categories"].items()),
            key=lambda c: c["amount"], reverse=True,
        )
        group["payers"] = sorted(
            ({"name": n, "amount": round_money(a)} for n, a in group["payers"].items()),
            key=lambda c: c["amount"], reverse=True,
        )
        group["average_payment"] = round_money(group["total_amount"] / group["payment_count"])
        periods.append(_rounded(group))

    grand_total = sum_money(p["total_amount"] for p in periods)
    return {
        "periods": periods,
        "summary": {
            "total_periods": len(periods),
            "grand_total": grand_total,
            "total_paid": sum_money(p["paid_amount"] for p in periods),
            "total_pending": sum_money(p["pending_amount"] for p in periods),
            "total_overdue": sum_money(p["overdue_amount"] for p in periods),
            "average_per_period": round_money(grand_total / len(periods)) if periods else ZERO,
            "unique_expenses": len(expense_ids),
            "total_payments": sum(p["payment_count"] for p in periods),
        },
    }


def category_report(categories: Iterable[Any], payments: Iterable[Any]) -> Dict[str, Any]:
    """Every category of the user, including unused ones, with its spend in the window."""
    by_id = {c["category_id"]: c for c in category_breakdown(payments)}
    rows = []
    for category in categories:
        entry = by_id.pop(str(category.id), None)
        total = entry["total_amount"] if entry else ZERO
        expense_count = entry["expense_count"] if entry else 0
        rows.append({
            "id": str(category.id),
            "name": category.name,
            "icon": category.icon,
            "color": category.color,
            "total_amount": total,
            "expense_count": expense_count,
            "payment_count": entry["payment_count"] if entry else 0,
            "average_expense_value": round_money(total / expense_count) if expense_count else ZERO,
        })
    # Payments of uncategorized expenses
    for entry in by_id.values():
        rows.append({
            "id": entry["category_id"],
            "name": entry["category_name"],
            "icon": None,
            "color": entry["category_color"],
            "total_amount": entry["total_amount"],
            "expense_count": entry["expense_count"],
            "payment_count": entry["payment_count"],
            "average_expense_value": round_money(entry["total_amount"] / entry["expense_count"]),
        })

    rows.sort(key=lambda r: r["total_amount"], reverse=True)
    total_spent = sum_money(r["total_amount"] for r in rows)
    for row in rows:
        row["percentage"] = _ratio(row["total_amount"], total_spent)

    return {
        "summary": {
            "total_categories": len(rows),
            "total_spent": total_spent,
            "average_per_category": round_money(total_spent / len(rows)) if rows else ZERO,
            "top_category": rows[0]["name"] if rows else None,
            "least_used_category": rows[-1]["name"] if rows else None,
        },
        "categories": rows,
    }


def payer_report(payers: Iterable[Any], payments: Iterable[Any]) -> Dict[str, Any]:
    """Share owed by each payer plus what each one bought."""
    payments = list(payments)
    rows = OrderedDict(
        (str(p.id), {"id": str(p.id), "name": p.name, "color": p.color, "active": p.active,
                     **_empty_totals(), "bought_amount": ZERO, "payment_count": 0})
        for p in payers
    )
    for payment in payments:
        buyer_id = str(payment.expense.buyer_id)
        if buyer_id in rows:
            rows[buyer_id]["bought_amount"] += Decimal(payment.amount)
        for payer, share in payer_shares(payment):
            row = rows.get(str(payer.id))
            if row is None:
                continue
            _add(row, payment.status, share)
            row["payment_count"] += 1

    grand_total = sum((r["total_amount"] for r in rows.values()), ZERO)
    result = []
    for row in rows.values():
        row["percentage"] = _ratio(row["total_amount"], grand_total)
        result.append(_rounded(row))
    result.sort(key=lambda r: r["total_amount"], reverse=True)

    return {
        "summary": {"total_payers": len(result), "total_amount": round_money(grand_total)},
        "payers": result,
    }


def financial_summary(
    payments: Iterable[Any], expenses: Iterable[Any], today: date, months: int = 12
) -> Dict[str, Any]:
    """Month-by-month spend over the trailing window plus the split by expense type."""
    first_year, first_month = shift_month(today.year, today.month, -(months - 1))
    window = []
    for offset in range(months):
        year, month = shift_month(first_year, first_month, offset)
        window.append((year, month))

    monthly: "OrderedDict[Tuple[int, int], Dict[str, Any]]" = OrderedDict(
        ((y, m), {"period": period_key(m, y), "year": y, "month": m, "total_amount": ZERO, "payment_count": 0})
        for y, m in window
    )
    for payment in payments:
        entry = monthly.get((payment.year, payment.month))
        if entry is None:
            continue
        entry["total_amount"] += Decimal(payment.amount)
        entry["payment_count"] += 1

    by_month = []
    for entry in monthly.values():
        count = entry["payment_count"]
        entry["average_payment"] = round_money(entry["total_amount"] / count) if count else ZERO
        by_month.append(_rounded(entry))

    total_spending = sum_money(m["total_amount"] for m in by_month)
    total_payments = sum(m["payment_count"] for m in by_month)
    current = monthly[(today.year, today.month)]["total_amount"]
    prev_year, prev_month = shift_month(today.year, today.month, -1)
    previous = monthly[(prev_year, prev_month)]["total_amount"] if months > 1 else ZERO
    growth = percentage_change(previous, current)

    types: Dict[str, Dict[str, Any]] = {}
    for expense in expenses:
        type_name = ExpenseType(expense.type).value
        entry = types.setdefault(type_name, {"type": type_name, "total_amount": ZERO, "expense_count": 0})
        entry["total_amount"] += Decimal(expense.total_amount)
        entry["expense_count"] += 1
    by_type = []
    for entry in types.values():
        entry["percentage"] = _ratio(entry["total_amount"], total_spending)
        by_type.append(_rounded(entry))
    by_type.sort(key=lambda t: t["total_amount"], reverse=True)

    active_months = [m for m in by_month if m["payment_count"]]
    return {
        "period": {"start": date(first_year, first_month, 1), "end": today, "months": months},
        "totals": {
            "spending": total_spending,
            "payments": total_payments,
            "average_monthly": round_money(total_spending / months),
            "average_payment": round_money(total_spending / total_payments) if total_payments else ZERO,
        },
        "growth": {
            "month_over_month": growth,
            "trend": "increase" if growth > 0 else "decrease" if growth < 0 else "stable",
        },
        "breakdown": {"by_type": by_type, "by_month": by_month},
        "insights": {
            "highest_spending_month": max(active_months, key=lambda m: m["total_amount"])["period"] if active_months else None,
            "lowest_spending_month": min(active_months, key=lambda m: m["total_amount"])["period"] if active_months else None,
            "most_common_expense_type": max(by_type, key=lambda t: t["expense_count"])["type"] if by_type else None,
        },
    }


# ────────────────────────────────────────────────────────────────────────────────
# PER-ENTITY STATS
# ────────────────────────────────────────────────────────────────────────────────
def payer_stats(payer_id: Any, payments: Iterable[Any]) -> Dict[str, Any]:
    """What a payer bought, owes alone and owes through splits in a set of payments."""
    payer_id = str(payer_id)
    stats = {
        "as_buyer": {"total_amount": ZERO, "payment_count": 0},
        "as_payer_single": {"total_amount": ZERO, "payment_count": 0},
        "as_payer_split": {"total_amount": ZERO, "payment_count": 0},
    }
    for payment in payments:
        expense = payment.expense
        if str(expense.buyer_id) == payer_id:
            stats["as_buyer"]["total_amount"] += Decimal(payment.amount)
            stats["as_buyer"]["payment_count"] += 1
        if expense.is_divided and expense.splits:
            for payer, share in payer_shares(payment):
                if str(payer.id) == payer_id:
                    stats["as_payer_split"]["total_amount"] += share
                    stats["as_payer_split"]["payment_count"] += 1
        elif str(expense.effective_payer_id) == payer_id:
            stats["as_payer_single"]["total_amount"] += Decimal(payment.amount)
            stats["as_payer_single"]["payment_count"] += 1

    stats = {k: _rounded(v) for k, v in stats.items()}
    stats["total"] = {
        "total_amount": round_money(
            stats["as_payer_single"]["total_amount"] + stats["as_payer_split"]["total_amount"]
        ),
        "payment_count": stats["as_payer_single"]["payment_count"] + stats["as_payer_split"]["payment_count"],
    }
    return stats


def category_usage(payments: Iterable[Any]) -> List[Dict[str, Any]]:
    """Per-category spend with average per expense, largest first."""
    usage = []
    for entry in category_breakdown(payments):
        count = entry["expense_count"]
        usage.append({
            "category_id": entry["category_id"],
            "category_name": entry["category_name"],
            "category_color": entry["category_color"],
            "total_amount": entry["total_amount"],
            "expense_count": count,
            "average_amount": round_money(entry["total_amount"] / count) if count else ZERO,
        })
    return usage


def card_usage(card: Any, payments: Sequence[Any]) -> Dict[str, Any]:
    used = monthly_total(payments)
    limit = Decimal(card.limit) if card.limit is not None else None
    return {
        "total_amount": used,
        "transaction_count": len(payments),
        "utilization_percentage": _ratio(used, limit) if limit else None,
        "available_limit": round_money(limit - used) if limit is not None else None,
        "category_breakdown": [
            {k: c[k] for k in ("category_id", "category_name", "total_amount", "payment_count")}
            for c in category_breakdown(payments)
        ],
    }


def card_due_date(card: Any, month: int, year: int) -> date:
    """The card's bill due date within a given month, clamped to the month length."""
    return clamp_day(year, month, card.due_day)
