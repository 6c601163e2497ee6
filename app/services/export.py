from datetime import datetime

import pandas as pd
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.authz import RequestContext
from app.core.errors import NotFound
from app.schemas.transaction import TransactionFilters
from app.services.transactions import TransactionService

CSV_FIELDS = ["id", "date", "user", "userEmail", "type", "category", "description", "amount"]


def rows_to_csv(rows: list[dict]) -> str:
    df = pd.DataFrame(rows)
    out = pd.DataFrame({
        "id": df["id"],
        "date": pd.to_datetime(df["date"]).dt.strftime("%Y-%m-%d"),
        "user": df["user"].fillna("Unknown"),
        "userEmail": df["user_email"].fillna("Unknown"),
        "type": df["type"],
        "category": df["category"],
        "description": df["description"],
        "amount": df["amount"].map(lambda v: f"{float(v):.2f}"),
    }, columns=CSV_FIELDS)
    return out.to_csv(index=False)


def export_filename(today: datetime | None = None) -> str:
    today = today or datetime.now()
    return f"transactions_{today.strftime('%Y-%m-%d')}.csv"


async def export_transactions(db: AsyncSession, ctx: RequestContext, filters: TransactionFilters) -> str:
    rows = await TransactionService.fetch_rows(db, ctx, filters)
    if not rows:
        raise NotFound("No transactions found")
    return rows_to_csv(rows)
