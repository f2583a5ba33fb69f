import structlog
import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
from slowapi.middleware import SlowAPIMiddleware

from storefront.api.v1 import auth, cart, orders, products
from storefront.core.config import settings
from storefront.core.error_handlers import register_exception_handlers
from storefront.core.logging_config import configure_logging
from storefront.core.rate_limiter import limiter
from storefront.db.session import SessionLocal, engine
from storefront.middleware import request_context
from storefront.models.user import User, UserRole

API_VERSION = "1.0.0"

configure_logging()
logger = structlog.get_logger()


def init_sentry() -> None:
    if settings.ENVIRONMENT != "production" or not settings.SENTRY_DSN:
        return
    try:
        sentry_sdk.init(
            dsn=settings.SENTRY_DSN,
            environment=settings.ENVIRONMENT,
            release=f"storefront-api@{API_VERSION}",
            traces_sample_rate=0.1,
            integrations=[FastApiIntegration(), SqlalchemyIntegration()],
        )
    except Exception as exc:
        # The API still serves requests without monitoring.
        logger.warning("sentry_init_failed", error=str(exc))
    else:
        logger.info("sentry_initialized")


init_sentry()

app = FastAPI(
    title=settings.PROJECT_NAME,
    version=API_VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    docs_url=f"{settings.API_V1_STR}/docs",
    redoc_url=f"{settings.API_V1_STR}/redoc",
)


@app.on_event("startup")
def require_admin_in_production():
    """Refuse to boot a production instance that nobody can administer."""
    if settings.ENVIRONMENT != "production":
        return

    with SessionLocal() as db:
        has_admin = db.query(User.id).filter(User.role == UserRole.ADMIN).first() is not None

    if not has_admin:
        raise RuntimeError(
            "No admin user found in production. "
            "Run `python -m storefront.db.init_db` before starting the API."
        )


app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.BACKEND_CORS_ORIGINS),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=[
        "Authorization",
        "Content-Type",
        auth.ADMIN_LOGIN_HEADER,
        request_context.CORRELATION_HEADER,
    ],
    expose_headers=[request_context.PROCESS_TIME_HEADER, request_context.CORRELATION_HEADER],
    max_age=3600,
)

request_context.install(app)
register_exception_handlers(app)

app.include_router(auth.router, prefix=settings.API_V1_STR, tags=["Authentication"])
app.include_router(products.router, prefix=f"{settings.API_V1_STR}/products", tags=["Products"])
app.include_router(cart.router, prefix=f"{settings.API_V1_STR}/cart", tags=["Cart"])
app.include_router(orders.router, prefix=f"{settings.API_V1_STR}/orders", tags=["Orders"])


@app.get("/", include_in_schema=False)
def root():
    return {
        "name": settings.PROJECT_NAME,
        "version": API_VERSION,
        "docs": app.docs_url,
    }


@app.get("/health", tags=["Health"])
def health_check():
    return {
        "status": "healthy",
        "environment": settings.ENVIRONMENT,
        "version": API_VERSION,
    }


@app.get("/health/database", tags=["Health"])
def database_health_check():
    try:
        with engine.connect() as connection:
            connection.exec_driver_sql("SELECT 1")
    except Exception as exc:
        logger.warning("database_health_check_failed", error_type=type(exc).__name__)
        return {"status": "unhealthy", "reason": "Database connectivity check failed"}
    return {"status": "healthy", "pool": engine.pool.__class__.__name__}
