from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from supportdesk.core.config import settings
from supportdesk.core.database import Base, engine
from supportdesk.core.logging_config import configure_logging

# Import models so SQLAlchemy registers tables for create_all().
import supportdesk.models.user  # noqa: F401
import supportdesk.models.ticket  # noqa: F401

from supportdesk.api.routes import auth, tickets

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting up: initializing database...")
    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database initialized successfully.")
    except Exception:
        logger.exception("Database initialization failed")
        raise

    yield
    logger.info("Shutting down...")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    lifespan=lifespan,
)

# Allow dashboard access (tighten allow_origins in production).
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router, prefix=f"{settings.API_V1_STR}/auth", tags=["Auth"])
app.include_router(tickets.router, prefix=f"{settings.API_V1_STR}/tickets", tags=["Tickets"])


@app.get("/")
def read_root():
    return {"status": "success", "message": f"Welcome to {settings.PROJECT_NAME} API"}
