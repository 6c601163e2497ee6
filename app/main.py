from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.config import settings
from app.core.authz import session_guard
from app.core.database import init_db, AsyncSessionLocal
from app.core.errors import register_exception_handlers
from app.core.log_config import configure_logging
from app.core.seed import seed_owner
from app.api.router import api_router

configure_logging()

tags_metadata = [
    {
        "name": "Auth",
        "description": "Registration, login and the session cookie.",
    },
    {
        "name": "Transactions",
        "description": "Income and expense records, scoped by owner and role.",
    },
    {
        "name": "Users",
        "description": "User management for ADMIN and OWNER.",
    },
    {
        "name": "Activity",
        "description": "Audit trail of changes.",
    },
    {
        "name": "Dashboard",
        "description": "Aggregated totals and charts.",
    },
    {
        "name": "System",
        "description": "Health checks.",
    },
]

app = FastAPI(
    title=settings.PROJECT_NAME,
    description="""
### API

Multi-tenant income and expense tracking with role-scoped access and an audit log.

    """,
    version=settings.VERSION,
    openapi_tags=tags_metadata,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json"
)

register_exception_handlers(app)

app.middleware("http")(session_guard)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.on_event("startup")
async def startup():
    await init_db()
    async with AsyncSessionLocal() as session:
        await seed_owner(session)

app.include_router(api_router, prefix=settings.API_PREFIX)

@app.get("/health", tags=["System"])
def health():
    return {
        "status": "operational",
        "version": settings.VERSION,
    }
