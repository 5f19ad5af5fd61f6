import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import inspect

from epharmacy import models  # noqa: F401  (registers tables on Base.metadata)
from epharmacy.auth.bootstrap import ensure_admin_user
from epharmacy.auth.routes import router as auth_router
from epharmacy.config.settings import env_flag, get_settings
from epharmacy.db import Base, engine
from epharmacy.routes.admin_routes import router as admin_router
from epharmacy.routes.order_routes import router as order_router
from epharmacy.routes.payment_routes import router as payment_router
from epharmacy.routes.prescription_routes import router as prescription_router
from epharmacy.routes.product_routes import router as product_router
from epharmacy.routes.user_routes import router as user_router

_logger = logging.getLogger(__name__)

settings = get_settings()


def configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _required_tables() -> set[str]:
    return {
        "users",
        "pharmacies",
        "products",
        "prescriptions",
        "orders",
        "order_items",
    }


def _assert_schema_ready() -> None:
    inspector = inspect(engine)
    existing = set(inspector.get_table_names())
    missing = sorted(_required_tables() - existing)
    if not missing:
        return
    raise RuntimeError(
        "Database schema is not initialized. "
        "Run `alembic upgrade head` (from the `backend/` folder), "
        f"or set DB_AUTO_CREATE=1 for a quick dev bootstrap. Missing tables: {', '.join(missing)}"
    )


def init_database() -> None:
    auto_create = env_flag("DB_AUTO_CREATE", default=(engine.dialect.name == "sqlite"))
    if auto_create:
        Base.metadata.create_all(bind=engine)
    else:
        _assert_schema_ready()

    ensure_admin_user()


@asynccontextmanager
async def lifespan(_: FastAPI):
    configure_logging()
    init_database()
    _logger.info("EPharmacy API started version=%s prefix=%s", settings.api_version, settings.api_prefix or "/")
    yield


app = FastAPI(
    title="EPharmacy API",
    description="Medical supplies marketplace API",
    version=settings.api_version,
    docs_url="/api-docs",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    _logger.exception("unhandled error %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


prefix = settings.api_prefix

app.include_router(auth_router, prefix=f"{prefix}/auth", tags=["Auth"])
app.include_router(user_router, prefix=prefix)
app.include_router(product_router, prefix=prefix)
app.include_router(prescription_router, prefix=prefix)
app.include_router(order_router, prefix=prefix)
app.include_router(payment_router, prefix=prefix)
app.include_router(admin_router, prefix=prefix)


@app.get(f"{prefix}/health", tags=["Meta"])
def health():
    return {
        "status": "OK",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.api_version,
    }


@app.get(f"{prefix}/", tags=["Meta"])
def api_info():
    return {
        "message": "EPharmacy API",
        "version": settings.api_version,
        "documentation": "/api-docs",
        "endpoints": {
            "auth": f"{prefix}/auth",
            "users": f"{prefix}/users",
            "products": f"{prefix}/products",
            "prescriptions": f"{prefix}/prescriptions",
            "orders": f"{prefix}/orders",
            "payments": f"{prefix}/payments",
            "admin": f"{prefix}/admin",
        },
    }


def run() -> None:
    import uvicorn

    uvicorn.run(
        "epharmacy.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
