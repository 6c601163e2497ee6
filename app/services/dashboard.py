from datetime import datetime
from typing import Iterable, Optional

import pandas as pd
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.authz import RequestContext
from app.models.transaction import Transaction, TransactionType
from app.models.user import User, Role
from app.services.transactions import TransactionService

COLUMNS = ["user_id", "amount", "type", "category", "date"]
POSITIVE_TYPES = (TransactionType.INCOME.value, TransactionType.OTHER.value)


def to_frame(rows: Iterable[dict]) -> pd.DataFrame:
    df = pd.DataFrame(list(rows), columns=COLUMNS)
    df["amount"] = pd.to_numeric(df["amount"], errors="coerce").fillna(0.0).astype(float)
    return df


def _sum(df: pd.DataFrame, trx_type: str) -> float:
    return float(df.loc[df["type"] == trx_type, "amount"].sum())


def calculate_balance(rows: Iterable[dict]) -> float:
    df = to_frame(rows)
    if df.empty:
        return 0.0
    credit = float(df.loc[df["type"].isin(POSITIVE_TYPES), "amount"].sum())
    return credit - _sum(df, TransactionType.EXPENSE.value)


def user_breakdown(rows: Iterable[dict], users: Iterable[dict]) -> list[dict]:
    df = to_frame(rows)
    result = []
    for user in users:
        own = df[df["user_id"] == user["id"]]
        income = _sum(own, TransactionType.INCOME.value)
        expense = _sum(own, TransactionType.EXPENSE.value)
        result.append({
            "userId": user["id"],
            "userName": user["name"],
            "totalTransactions": int(len(own)),
            "income": income,
            "expense": expense,
            "balance": income - expense,
        })
    return result


def top_expense_categories(rows: Iterable[dict], limit: int = 5) -> list[dict]:
    df = to_frame(rows)
    expenses = df[df["type"] == TransactionType.EXPENSE.value]
    if expenses.empty:
        return []
    totals = expenses.groupby("category", sort=False)["amount"].sum()
    # mergesort keeps first-seen order between equal totals
    totals = totals.sort_values(ascending=False, kind="mergesort").head(limit)
    return [{"name": name, "amount": float(amount)} for name, amount in totals.items()]


def monthly_window(rows: Iterable[dict], today: Optional[datetime] = None, months: int = 6) -> list[dict]:
    """Income/expense per calendar month for the trailing window ending at ``today``'s month.

    Every month of the window is present, empty ones with zeros.
    """
    today = today or datetime.now()
    periods = pd.period_range(end=pd.Period(today, freq="M"), periods=months, freq="M")
    window = pd.DataFrame(0.0, index=periods, columns=["income", "expense"])

    df = to_frame(rows)
    df = df[df["type"].isin([TransactionType.INCOME.value, TransactionType.EXPENSE.value])]
    if not df.empty:
        df = df.assign(period=pd.to_datetime(df["date"]).dt.to_period("M"))
        df = df[df["period"].isin(periods)]
        sums = df.groupby(["period", "type"])["amount"].sum()
        for (period, trx_type), amount in sums.items():
            column = "income" if trx_type == TransactionType.INCOME.value else "expense"
            window.loc[period, column] = float(amount)

    return [
        {"month": period.strftime("%b %Y"), "income": float(r.income), "expense": float(r.expense)}
        for period, r in window.iterrows()
    ]


class DashboardService:
    @staticmethod
    async def _rows(db: AsyncSession, user_id: Optional[int] = None) -> list[dict]:
        query = select(Transaction.user_id, Transaction.amount, Transaction.type,
                       Transaction.category, Transaction.date)
        if user_id is not None:
            query = query.where(Transaction.user_id == user_id)
        result = await db.execute(query)
        return [dict(r._mapping) for r in result.all()]

    @staticmethod
    async def summary(db: AsyncSession, ctx: RequestContext, today: Optional[datetime] = None) -> dict:
        if ctx.can("dashboard:global"):
            rows = await DashboardService._rows(db)
            totals = await TransactionService.aggregate(db)
            total_users = (await db.execute(select(func.count(User.id)))).scalar() or 0

            users_res = await db.execute(
                select(User.id, User.name).where(User.role != Role.OWNER.value).order_by(User.id)
            )
            users = [{"id": u.id, "name": u.name} for u in users_res.all()]

            return {
                "totalUsers": total_users,
                "totalTransactions": sum(v["count"] for v in totals.values()),
                "totalIncome": totals.get(TransactionType.INCOME.value, {}).get("total", 0.0),
                "totalExpenses": totals.get(TransactionType.EXPENSE.value, {}).get("total", 0.0),
                "balance": calculate_balance(rows),
                "userSummaries": user_breakdown(rows, users),
                "topCategories": top_expense_categories(rows),
                "monthly": monthly_window(rows, today),
            }

        rows = await DashboardService._rows(db, ctx.user_id)
        totals = await TransactionService.aggregate(db, user_id=ctx.user_id)
        return {
            "userTransactions": sum(v["count"] for v in totals.values()),
            "userIncome": totals.get(TransactionType.INCOME.value, {}).get("total", 0.0),
            "userExpenses": totals.get(TransactionType.EXPENSE.value, {}).get("total", 0.0),
            "balance": calculate_balance(rows),
            "topCategories": top_expense_categories(rows),
            "monthly": monthly_window(rows, today),
        }
