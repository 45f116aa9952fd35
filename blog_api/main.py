import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from blog_api.cache import cache
from blog_api.config import settings
from blog_api.database import dispose_engine
from blog_api.errors import register_exception_handlers
from blog_api.middleware import TimingMiddleware
from blog_api.routers import access_tokens, articles, comments
from blog_api.serializers import JSONAPIResponse

VERSION = "1.0.0"

logger = logging.getLogger(__name__)


def setup_logging() -> None:
    """Configure the root logger once, before anything else logs."""
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )
    # SQL echo is controlled by DEBUG, not by the root level.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    setup_logging()
    await cache.connect()
    logger.info("Blog API %s started (%s)", VERSION, settings.APP_ENV)
    yield
    # Shutdown
    await cache.disconnect()
    await dispose_engine()
    logger.info("Blog API stopped")


app = FastAPI(
    title="Blog JSON:API",
    description="Articles and comments served as JSON:API documents, guarded by bearer tokens",
    version=VERSION,
    lifespan=lifespan,
    default_response_class=JSONAPIResponse,
)

register_exception_handlers(app)

# Middleware
app.add_middleware(TimingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(access_tokens.router)
app.include_router(articles.router)
app.include_router(comments.router)


@app.get("/health")
async def health():
    return {"status": "healthy", "version": VERSION, "cache": cache.stats}
