import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shared.core.config import settings
from shared.core.database import init_db
from shared.helpers.exception_handler import setup_exception_handlers
from shared.utils.scoped_cache import ScopedCache

from .router.address_approval import address_router
from .router.building_inventory import building_router, flats_router
from .router.flat_registration import flat_request_router
from .router.locations import location_router
from .router.system import system_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create all tables
    init_db()
    logger.info("Building service started")
    yield


app = FastAPI(title="Building Service API", lifespan=lifespan)

# one cache per app instance, shared by the flat-request routes
app.state.request_cache = ScopedCache(ttl_seconds=settings.REQUEST_CACHE_TTL_SECONDS)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_exception_handlers(app)

# Include routers
app.include_router(location_router.router)
app.include_router(address_router.router)
app.include_router(building_router.router)
app.include_router(flats_router.router)
app.include_router(flat_request_router.router)
app.include_router(system_router.router)
