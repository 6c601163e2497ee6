from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from app.config import settings
from app.core.authz import RequestContext, get_context
from app.core.database import get_db
from app.schemas.activity import ActivityLogResponse
from app.schemas.transaction import (
    TransactionPayload, TransactionResponse, TransactionPage, TransactionFilters, CategoriesResponse,
)
from app.schemas.user import RegisterRequest, LoginRequest, UserResponse, LoginResponse, SessionResponse
from app.services.activity import ActivityLogger
from app.services.auth import AuthService
from app.services.dashboard import DashboardService
from app.services.export import export_transactions, export_filename
from app.services.transactions import TransactionService, INCOME_CATEGORIES, EXPENSE_CATEGORIES
from app.services.users import UserService

api_router = APIRouter()


def get_filters(
        category: Optional[str] = None,
        type: Optional[str] = None,
        user_id: Optional[str] = Query(None, alias="userId"),
        start_date: Optional[str] = Query(None, alias="startDate"),
        end_date: Optional[str] = Query(None, alias="endDate"),
) -> TransactionFilters:
    return TransactionFilters(
        category=category, type=type, user_id=user_id, start_date=start_date, end_date=end_date,
    )


@api_router.post("/auth/register", response_model=UserResponse, tags=["Auth"])
async def register(req: RegisterRequest, db: AsyncSession = Depends(get_db)):
    return await AuthService.register(db, req)


@api_router.post("/auth/login", response_model=LoginResponse, tags=["Auth"])
async def login(req: LoginRequest, response: Response, db: AsyncSession = Depends(get_db)):
    user, token = await AuthService.login(db, req)
    response.set_cookie(
        settings.SESSION_COOKIE_NAME,
        token,
        max_age=settings.session_max_age_seconds,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="strict",
    )
    return {"user": user}


@api_router.post("/auth/logout", tags=["Auth"])
async def logout(response: Response, ctx: RequestContext = Depends(get_context)):
    response.delete_cookie(settings.SESSION_COOKIE_NAME, httponly=True, secure=settings.COOKIE_SECURE,
                           samesite="strict")
    return {"success": True}


@api_router.get("/auth/session", response_model=SessionResponse, tags=["Auth"])
async def session(ctx: RequestContext = Depends(get_context)):
    return {"user": {"id": ctx.user_id, "name": ctx.name, "email": ctx.email, "role": ctx.role}}


@api_router.get("/auth/me", response_model=UserResponse, tags=["Auth"])
async def me(ctx: RequestContext = Depends(get_context), db: AsyncSession = Depends(get_db)):
    return await AuthService.me(db, ctx.user_id)


@api_router.get("/transactions", response_model=TransactionPage, tags=["Transactions"])
async def list_transactions(
        page: int = 1,
        page_size: int = Query(settings.DEFAULT_PAGE_SIZE, alias="pageSize"),
        filters: TransactionFilters = Depends(get_filters),
        ctx: RequestContext = Depends(get_context),
        db: AsyncSession = Depends(get_db),
):
    return await TransactionService.list_transactions(db, ctx, filters, page, page_size)


@api_router.post("/transactions", response_model=TransactionResponse, status_code=201, tags=["Transactions"])
async def create_transaction(payload: TransactionPayload, ctx: RequestContext = Depends(get_context),
                             db: AsyncSession = Depends(get_db)):
    return await TransactionService.create(db, ctx, payload)


@api_router.get("/transactions/export", tags=["Transactions"])
async def export_csv(filters: TransactionFilters = Depends(get_filters),
                     ctx: RequestContext = Depends(get_context),
                     db: AsyncSession = Depends(get_db)):
    csv_text = await export_transactions(db, ctx, filters)
    return Response(
        content=csv_text,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{export_filename()}"'},
    )


@api_router.put("/transactions/{transaction_id}", response_model=TransactionResponse, tags=["Transactions"])
async def update_transaction(transaction_id: int, payload: TransactionPayload,
                             ctx: RequestContext = Depends(get_context),
                             db: AsyncSession = Depends(get_db)):
    return await TransactionService.update(db, ctx, transaction_id, payload)


@api_router.delete("/transactions/{transaction_id}", tags=["Transactions"])
async def delete_transaction(transaction_id: int, ctx: RequestContext = Depends(get_context),
                             db: AsyncSession = Depends(get_db)):
    return await TransactionService.delete(db, ctx, transaction_id)


@api_router.get("/categories", response_model=CategoriesResponse, tags=["Transactions"])
async def get_categories(ctx: RequestContext = Depends(get_context)):
    return {"INCOME": INCOME_CATEGORIES, "EXPENSE": EXPENSE_CATEGORIES, "enforced": settings.ENFORCE_CATEGORY_LISTS}


@api_router.get("/users", response_model=List[UserResponse], tags=["Users"])
async def list_users(ctx: RequestContext = Depends(get_context), db: AsyncSession = Depends(get_db)):
    return await UserService.list_users(db, ctx)


@api_router.delete("/users/{user_id}", response_model=UserResponse, tags=["Users"])
async def delete_user(user_id: int, ctx: RequestContext = Depends(get_context), db: AsyncSession = Depends(get_db)):
    return await UserService.delete_user(db, ctx, user_id)


@api_router.get("/activity-logs", response_model=List[ActivityLogResponse], tags=["Activity"])
async def list_activity_logs(limit: int = Query(settings.ACTIVITY_LOG_DEFAULT_LIMIT, ge=1, le=500),
                             ctx: RequestContext = Depends(get_context),
                             db: AsyncSession = Depends(get_db)):
    entries = await ActivityLogger.list_for(db, ctx, limit)
    return [ActivityLogResponse.model_validate(e) for e in entries]


@api_router.get("/dashboard/summary", tags=["Dashboard"])
async def dashboard_summary(ctx: RequestContext = Depends(get_context), db: AsyncSession = Depends(get_db)):
    return await DashboardService.summary(db, ctx)
