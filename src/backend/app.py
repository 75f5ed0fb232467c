import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv

# FastAPI imports
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Local imports
from src.backend.v4.api.router import app_v4
from src.backend.v4.integrations.eaccounting import EAccounting, EAccountingSettings

load_dotenv(override=False)

# Configure logging levels from environment variables
logging.basicConfig(level=getattr(logging, os.environ.get("LOG_LEVEL", "INFO").upper(), logging.INFO))
logging.getLogger("urllib3").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage FastAPI application lifecycle - startup and shutdown."""
    logger = logging.getLogger(__name__)

    logger.info("🚀 Starting eAccounting dashboard API...")
    yield
    logger.info("👋 eAccounting dashboard API shutdown complete")


def create_app(
    settings: EAccountingSettings | None = None,
    sdk: EAccounting | None = None,
) -> FastAPI:
    """Build the app with one SDK instance owned by `app.state`."""
    settings = settings or EAccountingSettings.from_env()

    app = FastAPI(lifespan=lifespan)
    app.state.eaccounting_settings = settings
    app.state.eaccounting = sdk or EAccounting.from_settings(settings)

    origins = [o.strip() for o in os.environ.get("CORS_ALLOW_ORIGINS", "*").split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # v4 endpoints
    app.include_router(app_v4)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.backend.app:app",
        host=os.environ.get("HOST", "127.0.0.1"),
        port=int(os.environ.get("PORT", "8000")),
        reload=False,
    )
