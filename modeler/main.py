import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from modeler.config import get_settings
from modeler.errors import register_exception_handlers
from modeler.routers import api_router

settings = get_settings()
log_level_name = (settings.log_level or "INFO").upper()
log_level = getattr(logging, log_level_name, logging.INFO)
logging.getLogger("modeler").setLevel(log_level)

app = FastAPI(title=settings.app_name)

logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.frontend_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
register_exception_handlers(app)
app.include_router(api_router, prefix="/api")


@app.get("/health", tags=["Health"])
def health_check() -> dict[str, str]:
    return {"status": "ok"}


@app.on_event("startup")
async def report_templates() -> None:
    templates_dir = settings.resolved_templates_path
    if not templates_dir.is_dir():
        logger.warning("Target-system template directory %s does not exist", templates_dir)
        return
    names = sorted(path.stem for path in templates_dir.glob("*.yaml"))
    logger.info("Loaded %d target-system template(s) from %s: %s", len(names), templates_dir, ", ".join(names))
