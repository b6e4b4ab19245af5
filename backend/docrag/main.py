from __future__ import annotations
import logging
import time
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# ============================================================
# 🪵 Logging Setup
# ============================================================
logging.basicConfig(
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(filename)s:%(lineno)d | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    level=logging.INFO,
)
logger = logging.getLogger("docrag.app")

# ============================================================
# 📦 Core Imports (DB + Dependency Injection)
# ============================================================
from docrag.config import settings
from docrag.container import AppContainer, build_container
from docrag.db.session import DatabasePool, ping_db

# ============================================================
# 🌐 Routers
# ============================================================
from docrag.router.chunks import router as chunks_router
from docrag.router.health import router as health_router
from docrag.router.query import router as query_router


def create_app(container: AppContainer | None = None) -> FastAPI:
    """
    Build the FastAPI app. A prebuilt container skips the startup wiring
    (database pool, Ollama clients) and is used as-is.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("🚀 Initializing RAG Backend API...")
        app.state.started_at = time.time()

        if app.state.container is None:
            if settings.vector_backend == "pgvector":
                DatabasePool.init()
                ok, msg = ping_db()
                if ok:
                    logger.info(f"✅ Database OK: {msg}")
                else:
                    logger.warning(f"⚠️ DB ping failed: {msg}")
            try:
                app.state.container = build_container(settings)
            except Exception:
                logger.exception("❌ Container init failed")
                DatabasePool.close()
                raise

        logger.info(f"🎯 API is ready and accepting requests (mode={app.state.container.mode})")
        try:
            yield
        finally:
            DatabasePool.close()
            logger.info("🧹 Application shutdown complete")

    app = FastAPI(
        title="Document RAG API",
        description="Retrieval-augmented QA over uploaded and pasted content",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health_router)
    app.include_router(query_router)
    app.include_router(chunks_router)
    return app


app = create_app()

# ============================================================
# 🏁 Entrypoint
# ============================================================
if __name__ == "__main__":
    import uvicorn

    logger.info("Starting RAG Backend API on port 8080...")
    uvicorn.run("docrag.main:app", host="0.0.0.0", port=8080, reload=False, log_config=None)
