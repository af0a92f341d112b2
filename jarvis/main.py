import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from jarvis.api.routes import router as api_router
from jarvis.config import public_settings, setup_logging
from jarvis.embeddings.client import EmbeddingsClient
from jarvis.llm.client import LLMClient
from jarvis.rag.pipeline import ChatService
from jarvis.semantic.service import MemoryService

logger = setup_logging()


def create_app(
    memory_service: MemoryService | None = None,
    chat_service: ChatService | None = None,
) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        memory = memory_service or MemoryService(EmbeddingsClient())
        app.state.memory_service = memory
        app.state.chat_service = chat_service or ChatService(memory, LLMClient())
        try:
            await memory.initialize()
        except Exception:
            # stores initialise lazily on first use
            logger.exception("Store initialisation failed at startup")
        logger.info("Application started")
        yield
        logger.info("Application stopping")

    app = FastAPI(title="Jarvis Memory", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error", extra={"path": request.url.path})
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    app.include_router(api_router)
    return app


logger.info("Application starting")
logger.info("Loaded settings: %s", public_settings())

app = create_app()
