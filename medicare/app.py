import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from medicare.auth import auth_routes
from medicare.config import settings
from medicare.dependencies import Store, build_store
from medicare.errors import MedicareError
from medicare.routers import appointment_routes, chat_routes, doctor_routes, rating_routes, realtime
from medicare.services.clock import clinic_now
from medicare.services.email_service import EmailService
from medicare.services.firebase_auth_service import firebase_auth_service
from medicare.services.notifier import ConnectionManager
from medicare.services.reminder_service import ReminderService

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(
    store=None,
    notifier=None,
    clock=None,
    auth_service=None,
    email_service=None,
    start_reminders: bool = settings.REMINDERS_ENABLED,
) -> FastAPI:
    """
    Build the API application.
    Every collaborator can be swapped, which is how tests run against MemoryStore.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        reminder_task = None
        if start_reminders:
            if app.state.store is None:
                app.state.store = build_store()
            reminders = ReminderService(
                app.state.store,
                app.state.email_service,
                app.state.clock,
                settings.REMINDER_LEAD_HOURS,
            )
            reminder_task = asyncio.create_task(reminders.run_forever(settings.REMINDER_INTERVAL_SECONDS))
            logger.info("Reminder job started (every %ss)", settings.REMINDER_INTERVAL_SECONDS)
        yield
        if reminder_task:
            reminder_task.cancel()
            try:
                await reminder_task
            except asyncio.CancelledError:
                logger.info("Reminder job stopped")

    app = FastAPI(title="Medicare API", lifespan=lifespan)

    app.state.store = store
    app.state.notifier = notifier or ConnectionManager()
    app.state.clock = clock or clinic_now
    app.state.auth_service = auth_service or firebase_auth_service
    app.state.email_service = email_service or EmailService()

    # CORS Middleware Setup
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(MedicareError)
    async def medicare_error_handler(request: Request, exc: MedicareError):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"},
        )

    @app.get("/api/health", tags=["health"])
    async def health(store: Store):
        """Liveness plus a storage round trip"""
        try:
            await store.ping()
        except Exception:
            logger.exception("Health check: storage unreachable")
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"status": "degraded", "storage": "unreachable"},
            )
        return {"status": "ok", "storage": "ok", "environment": settings.ENVIRONMENT}

    for module in (auth_routes, doctor_routes, appointment_routes, rating_routes, chat_routes, realtime):
        app.include_router(module.router, prefix="/api")

    return app


app = create_app()
