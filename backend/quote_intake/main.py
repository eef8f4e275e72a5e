import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from quote_intake import __version__
from quote_intake.core.config import settings

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S',
)

from quote_intake.api.routes.admin import router as admin_router
from quote_intake.api.routes.auth import router as auth_router
from quote_intake.api.routes.quotes import router as quotes_router
from quote_intake.core.errors import register_error_handlers
from quote_intake.db.init_db import init_db
from quote_intake.db.schema_features import detect_schema_features
from quote_intake.db.session import engine
from quote_intake.storage.uploads import ensure_upload_dir

logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name, version=__version__)

register_error_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "HEAD", "PUT", "PATCH", "POST", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=86400,
)

app.include_router(quotes_router)
app.include_router(auth_router)
app.include_router(admin_router)


@app.on_event("startup")
def _startup() -> None:
    path = ensure_upload_dir()
    logger.info("Upload directory: %s", path)
    init_db()
    app.state.schema_features = detect_schema_features(engine)


@app.get("/api/health")
def health():
    return {"ok": True}
