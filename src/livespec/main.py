from dotenv import load_dotenv
load_dotenv()

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from prometheus_fastapi_instrumentator import Instrumentator
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

from livespec.api.dependencies.services import LiveSyncServices, build_services
from livespec.api.routes.live_sources import router as live_sources_router
from livespec.api.routes.spec_diff import router as spec_diff_router
from livespec.logging_config import configure_logging
from livespec.tracing import configure_tracing

# ------------------------------------------------------------------
# Configure Observability
# ------------------------------------------------------------------
configure_logging()
configure_tracing()


def create_app(services: Optional[LiveSyncServices] = None) -> FastAPI:
    services = services or build_services()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        # Cancel every poll schedule and retry timer on the way out
        app.state.services.polling.shutdown()

    app = FastAPI(title="livespec", lifespan=lifespan)
    app.state.services = services

    app.include_router(live_sources_router)
    app.include_router(spec_diff_router)

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------
    FastAPIInstrumentor.instrument_app(app)
    Instrumentator().instrument(app).expose(app)

    # ------------------------------------------------------------------
    # Health Check
    # ------------------------------------------------------------------
    @app.get("/health")
    def health_check():
        return {
            "status": "ok",
            "active_polls": len(app.state.services.polling.get_active_polls()),
        }

    return app


app = create_app()
