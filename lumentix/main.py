from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from lumentix.api.routes import ping, tickets
from lumentix.core.config import get_settings
from lumentix.core.logging import configure_logging, init_tracer, shutdown_tracer
from lumentix.db.health import DatabaseHealthCheck
from lumentix.payments.repository import PaymentRepository
from lumentix.stellar.horizon import HorizonTransactionFetcher
from lumentix.tickets.repository import TicketRepository
from lumentix.tickets.service import TicketService


def _to_asyncpg_dsn(dsn: str) -> str:
    """Ensure the SQLAlchemy DSN uses the asyncpg driver."""

    if dsn.startswith("postgresql+asyncpg://"):
        return dsn
    if dsn.startswith("postgresql://"):
        return "postgresql+asyncpg://" + dsn[len("postgresql://") :]
    return dsn


@asynccontextmanager
async def lifespan(app: FastAPI):  # pragma: no cover - executed by framework
    settings = get_settings()
    logger = configure_logging(settings)
    tracer_provider = init_tracer(settings)

    app.state.logger = logger
    app.state.tracer_provider = tracer_provider
    horizon = HorizonTransactionFetcher(
        settings.horizon_url,
        timeout=settings.horizon_timeout_seconds,
    )

    app.state.db_health = None
    app.state.ticket_service = None
    db_engine = None
    try:
        db_engine = create_async_engine(_to_asyncpg_dsn(settings.postgres_dsn), future=True)
        app.state.db_health = DatabaseHealthCheck(db_engine)
        session_factory = async_sessionmaker(db_engine, expire_on_commit=False)
        ticket_repository = TicketRepository(session_factory, engine=db_engine)
        await ticket_repository.ensure_schema()
        app.state.ticket_service = TicketService(
            ticket_repository,
            PaymentRepository(session_factory),
            horizon,
        )
    except Exception:
        logger.exception("Ticket service initialisation failed; ticket routes will answer 503")
        if db_engine is not None:
            await db_engine.dispose()
            db_engine = None
        app.state.db_health = None
    try:
        yield
    finally:
        if db_engine is not None:
            await db_engine.dispose()
        await horizon.close()
        shutdown_tracer(tracer_provider)


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.include_router(ping.router)
    app.include_router(tickets.router)
    return app


app = create_app()
