import logging
import math
from datetime import datetime, time
from typing import Optional

from sqlalchemy import select, desc, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.authz import RequestContext, ensure
from app.core.errors import ValidationError, NotFound
from app.models.transaction import Transaction, TransactionType
from app.models.user import User
from app.schemas.activity import CreateDetails, UpdateDetails, DeleteDetails
from app.schemas.transaction import (
    TransactionPayload, TransactionResponse, TransactionOwner, TransactionPage, Pagination, TransactionFilters,
)
from app.services.activity import ActivityLogger

logger = logging.getLogger(__name__)

INCOME_CATEGORIES = ["Restaurant", "Surf Lessons", "Surf Board Rental", "Pending Payments Clear"]
EXPENSE_CATEGORIES = [
    "Haven't Paid", "Groceries", "Water Bill", "Electricity", "Building Rental",
    "Furnitures", "Glass and Crock", "Staff Salary", "Staff Service Charge",
]
FALLBACK_CATEGORY = "Other"

VALID_TYPES = [t.value for t in TransactionType]
ENTITY_TYPE = "Transaction"


def _parse_day(value: str, field: str) -> datetime:
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise ValidationError(f"Invalid {field}: expected YYYY-MM-DD")


def build_conditions(ctx: RequestContext, filters: TransactionFilters) -> list:
    """Translate the list/export filters into WHERE clauses, scoped to what the caller may see."""
    conditions = []

    target = filters.user_id
    if target and target != "all":
        try:
            target_id = int(target)
        except ValueError:
            raise ValidationError("Invalid userId")
        ensure(ctx, "transactions:view_all", owner_id=target_id,
               message="You are not authorized to view these transactions")
        conditions.append(Transaction.user_id == target_id)
    elif not ctx.can("transactions:view_all"):
        conditions.append(Transaction.user_id == ctx.user_id)

    if filters.category and filters.category != "all":
        conditions.append(Transaction.category == filters.category)

    if filters.type and filters.type != "all":
        conditions.append(Transaction.type == filters.type)

    if filters.start_date:
        start = _parse_day(filters.start_date, "startDate")
        conditions.append(Transaction.date >= datetime.combine(start.date(), time.min))

    if filters.end_date:
        end = _parse_day(filters.end_date, "endDate")
        conditions.append(Transaction.date <= datetime.combine(end.date(), time.max))

    return conditions


def allowed_categories(trx_type: str) -> Optional[list[str]]:
    if trx_type == TransactionType.INCOME.value:
        return INCOME_CATEGORIES
    if trx_type == TransactionType.EXPENSE.value:
        return EXPENSE_CATEGORIES
    return None


def validate_payload(payload: TransactionPayload) -> TransactionPayload:
    description = (payload.description or "").strip()
    category = (payload.category or "").strip()
    if not payload.amount or not description or not payload.type or not category:
        raise ValidationError("Amount, description, type, and category are required")

    if payload.type not in VALID_TYPES:
        raise ValidationError(f"Type must be one of: {', '.join(VALID_TYPES)}")

    if settings.ENFORCE_CATEGORY_LISTS:
        allowed = allowed_categories(payload.type)
        if allowed is not None and category not in allowed and category != FALLBACK_CATEGORY:
            raise ValidationError(f"Invalid category for {payload.type.lower()} type")

    trx_date = payload.date
    if trx_date is not None and trx_date.tzinfo is not None:
        # stored as naive local time
        trx_date = trx_date.astimezone().replace(tzinfo=None)

    return payload.model_copy(update={
        "amount": abs(payload.amount),
        "description": description,
        "category": category,
        "date": trx_date,
    })


def to_response(trx: Transaction, owner_name: Optional[str] = None, owner_email: Optional[str] = None,
                with_owner: bool = False) -> TransactionResponse:
    return TransactionResponse(
        id=trx.id,
        user_id=trx.user_id,
        amount=trx.amount,
        type=trx.type,
        category=trx.category,
        description=trx.description,
        date=trx.date,
        created_at=trx.created_at,
        updated_at=trx.updated_at,
        user=TransactionOwner(name=owner_name, email=owner_email) if with_owner else None,
    )


class TransactionService:
    @staticmethod
    async def list_transactions(db: AsyncSession, ctx: RequestContext, filters: TransactionFilters,
                                page: int = 1, page_size: int = settings.DEFAULT_PAGE_SIZE) -> TransactionPage:
        if page < 1 or page_size < 1:
            raise ValidationError("page and pageSize must be positive integers")

        conditions = build_conditions(ctx, filters)
        skip = (page - 1) * page_size

        query = (
            select(Transaction, User.name, User.email)
            .outerjoin(User, User.id == Transaction.user_id)
            .where(*conditions)
            .order_by(desc(Transaction.date), desc(Transaction.id))
            .offset(skip)
            .limit(page_size)
        )
        count_query = select(func.count(Transaction.id)).where(*conditions)

        rows = (await db.execute(query)).all()
        total = (await db.execute(count_query)).scalar() or 0

        return TransactionPage(
            transactions=[to_response(t, name, email, with_owner=True) for t, name, email in rows],
            pagination=Pagination(
                current_page=page,
                page_size=page_size,
                total_items=total,
                total_pages=math.ceil(total / page_size),
            ),
        )

    @staticmethod
    async def create(db: AsyncSession, ctx: RequestContext, payload: TransactionPayload) -> TransactionResponse:
        data = validate_payload(payload)
        now = datetime.now()

        db_obj = Transaction(
            user_id=ctx.user_id,
            amount=data.amount,
            type=data.type,
            category=data.category,
            description=data.description,
            date=data.date or now,
            created_at=now,
            updated_at=now,
        )
        db.add(db_obj)
        await db.commit()
        await db.refresh(db_obj)

        response = to_response(db_obj)
        await ActivityLogger.record(
            db, ctx, "CREATE", ENTITY_TYPE, db_obj.id,
            CreateDetails(createdTransaction=db_obj.snapshot(with_date=True)),
        )
        return response

    @staticmethod
    async def _get_for_change(db: AsyncSession, ctx: RequestContext, transaction_id: int, verb: str) -> Transaction:
        result = await db.execute(select(Transaction).where(Transaction.id == transaction_id))
        trx = result.scalar_one_or_none()
        if not trx:
            raise NotFound("Transaction not found")
        ensure(ctx, "transactions:modify_any", owner_id=trx.user_id,
               message=f"You are not authorized to {verb} this transaction")
        return trx

    @staticmethod
    async def update(db: AsyncSession, ctx: RequestContext, transaction_id: int,
                     payload: TransactionPayload) -> TransactionResponse:
        trx = await TransactionService._get_for_change(db, ctx, transaction_id, "update")
        data = validate_payload(payload)

        before = trx.snapshot()
        trx.amount = data.amount
        trx.type = data.type
        trx.category = data.category
        trx.description = data.description
        await db.commit()
        await db.refresh(trx)
        after = trx.snapshot()

        response = to_response(trx)
        await ActivityLogger.record(
            db, ctx, "UPDATE", ENTITY_TYPE, trx.id, UpdateDetails(before=before, after=after),
        )
        return response

    @staticmethod
    async def delete(db: AsyncSession, ctx: RequestContext, transaction_id: int) -> dict:
        trx = await TransactionService._get_for_change(db, ctx, transaction_id, "delete")

        # audit entry is written before the row is removed
        snapshot = trx.snapshot(with_date=True)
        await ActivityLogger.record(
            db, ctx, "DELETE", ENTITY_TYPE, transaction_id, DeleteDetails(deletedTransaction=snapshot),
        )

        result = await db.execute(select(Transaction).where(Transaction.id == transaction_id))
        trx = result.scalar_one_or_none()
        if trx is None:
            logger.warning("Transaction %s vanished before delete by user %s", transaction_id, ctx.user_id)
            raise NotFound("Transaction not found")
        await db.delete(trx)
        await db.commit()
        logger.info("Transaction %s deleted by user %s", transaction_id, ctx.user_id)
        return {"success": True}

    @staticmethod
    async def aggregate(db: AsyncSession, user_id: Optional[int] = None, by_user: bool = False) -> dict:
        """Sum and count amounts per type, optionally split per owner."""
        columns = [Transaction.type, func.sum(Transaction.amount).label("total"),
                   func.count(Transaction.id).label("count")]
        group_by = [Transaction.type]
        if by_user:
            columns.insert(0, Transaction.user_id)
            group_by.insert(0, Transaction.user_id)

        query = select(*columns).group_by(*group_by)
        if user_id is not None:
            query = query.where(Transaction.user_id == user_id)

        rows = (await db.execute(query)).all()

        if not by_user:
            return {r.type: {"total": r.total or 0.0, "count": r.count} for r in rows}

        grouped: dict = {}
        for r in rows:
            grouped.setdefault(r.user_id, {})[r.type] = {"total": r.total or 0.0, "count": r.count}
        return grouped

    @staticmethod
    async def fetch_rows(db: AsyncSession, ctx: RequestContext, filters: TransactionFilters) -> list[dict]:
        """Unpaginated rows with owner name/email, same scope and filters as ``list``."""
        conditions = build_conditions(ctx, filters)
        query = (
            select(Transaction, User.name, User.email)
            .outerjoin(User, User.id == Transaction.user_id)
            .where(*conditions)
            .order_by(desc(Transaction.date), desc(Transaction.id))
        )
        rows = (await db.execute(query)).all()
        return [
            {
                "id": t.id,
                "user_id": t.user_id,
                "date": t.date,
                "user": name,
                "user_email": email,
                "type": t.type,
                "category": t.category,
                "description": t.description,
                "amount": t.amount,
            }
            for t, name, email in rows
        ]
