# hackmate/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from hackmate import config
from hackmate.errors import DocumentNotFoundError, StoreUnavailableError
from hackmate.store.document_store import DocumentStore
from hackmate.sync import wait_background

# ----------------------------------------------------------------------
# Logger configuration
# ----------------------------------------------------------------------
logger = logging.getLogger("hackmate")
logger.setLevel(config.LOG_LEVEL)
handler = logging.StreamHandler()
formatter = logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
handler.setFormatter(formatter)

if not logger.handlers:
    logger.addHandler(handler)
else:
    for h in logger.handlers:
        h.setFormatter(formatter)

# ---------------- DATABASE / ROUTERS ----------------
from hackmate.database import engine as default_engine, init_db, make_session_factory  # noqa: E402
from hackmate.auth.identity_provider import IdentityProvider  # noqa: E402
from hackmate.activity.activity_router import router as activity_router  # noqa: E402
from hackmate.ai.ai_router import router as ai_router  # noqa: E402
from hackmate.auth.auth_router import router as auth_router  # noqa: E402
from hackmate.chat.chat_router import router as chat_router  # noqa: E402
from hackmate.milestone.milestone_router import router as milestone_router  # noqa: E402
from hackmate.notification.notification_router import router as notification_router  # noqa: E402
from hackmate.project.project_router import router as project_router  # noqa: E402
from hackmate.realtime.ws_router import router as ws_router  # noqa: E402
from hackmate.resource.resource_router import router as resource_router  # noqa: E402
from hackmate.schedule.schedule_router import router as schedule_router  # noqa: E402
from hackmate.task.task_router import router as task_router  # noqa: E402


def create_app(engine=None) -> FastAPI:
    engine = engine or default_engine
    session_factory = make_session_factory(engine)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Checking database models...")
        init_db(bind=engine)
        try:
            app.state.store = DocumentStore(session_factory)
        except StoreUnavailableError as exc:
            # the app still serves /api/ai; store-backed routes answer 503
            logger.error(f"Document store unavailable: {exc}")
            app.state.store = None
        app.state.identity = IdentityProvider(session_factory)
        logger.info("Backend ready", extra=config.config_diag_safe())

        yield

        await wait_background()
        if app.state.store is not None:
            app.state.store.close()

    app = FastAPI(title="HackMate AI Backend", lifespan=lifespan)

    # ---------------- CORS ----------------
    origins = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]
    if config.FRONTEND_ORIGIN:
        origins.append(config.FRONTEND_ORIGIN)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ---------------- ROUTERS ----------------
    app.include_router(auth_router, prefix="/auth")
    app.include_router(project_router)
    app.include_router(task_router)
    app.include_router(chat_router)
    app.include_router(milestone_router)
    app.include_router(schedule_router)
    app.include_router(resource_router)
    app.include_router(activity_router)
    app.include_router(notification_router)
    app.include_router(ai_router)
    app.include_router(ws_router)

    # ---------------- EXCEPTION HANDLERS ----------------
    @app.exception_handler(StoreUnavailableError)
    async def store_unavailable_handler(request: Request, exc: StoreUnavailableError):
        logger.error(f"Store unavailable on {request.url.path}: {exc}")
        return JSONResponse(status_code=503, content={"detail": "Document store unavailable"})

    @app.exception_handler(DocumentNotFoundError)
    async def not_found_handler(request: Request, exc: DocumentNotFoundError):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    # ---------------- ROOT ----------------
    @app.get("/")
    def read_root():
        return {"message": "HackMate backend running"}

    return app


app = create_app()
