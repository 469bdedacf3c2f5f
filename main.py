import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.database import Database
from pymongo.errors import PyMongoError

from config import Settings
from database import connect, ensure_indexes, ping
from errors import AppError
from routes import routers
from security import PasswordHasher, TokenService
from stores import Clock, Stores, now_utc

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    db: Optional[Database] = None,
    clock: Clock = now_utc,
) -> FastAPI:
    settings = settings or Settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    db = db if db is not None else connect(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        ensure_indexes(db)
        yield

    app = FastAPI(title="BizMate API", version="0.3.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.db = db
    app.state.stores = Stores(db, clock=clock)
    app.state.tokens = TokenService.from_settings(settings)
    app.state.hasher = PasswordHasher(rounds=settings.bcrypt_rounds)

    # ------------------ Errors ------------------
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        where = ".".join(str(p) for p in first.get("loc", ()) if p != "body") or "body"
        return JSONResponse(
            status_code=400,
            content={
                "error": f"{where}: {first.get('msg', 'invalid')}",
                "details": [{"loc": list(e["loc"]), "msg": e["msg"], "type": e["type"]} for e in errors],
            },
        )

    @app.exception_handler(PyMongoError)
    async def database_error_handler(request: Request, exc: PyMongoError):
        logger.exception("Database error on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    # ------------------ Health ------------------
    @app.get("/")
    def read_root():
        return {"message": "BizMate Backend is running"}

    @app.get("/api/health")
    def health():
        try:
            ping(db)
        except PyMongoError as e:
            logger.warning("Database ping failed: %s", e)
            return JSONResponse(status_code=503, content={"status": "degraded", "database": "unavailable"})
        return {"status": "ok", "database": "connected"}

    for router in routers:
        app.include_router(router)

    return app


_app: Optional[FastAPI] = None


def __getattr__(name: str):
    # "main:app" is built on first access, so importing create_app opens no client.
    global _app
    if name == "app":
        if _app is None:
            _app = create_app()
        return _app
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


if __name__ == "__main__":
    import uvicorn

    application = create_app()
    uvicorn.run(application, host="0.0.0.0", port=application.state.settings.port)
