"""FastAPI application for the Ashteams chat backend.

This module is a thin **presentation layer** wiring. All business logic
lives in ``application.use_cases`` so it can be tested and reused
independently of any HTTP framework.
"""

from __future__ import annotations

from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from ashteams_chat import __version__
from ashteams_chat.application.infrastructure.completion_client import CompletionClient
from ashteams_chat.application.use_cases import AccountUseCase, ChatUseCase
from ashteams_chat.config import Settings, get_settings
from ashteams_chat.domain.infrastructure import MemoryChatStore
from ashteams_chat.domain.protocols import IChatStore, ICompletionClient
from ashteams_chat.logging_config import setup_logging
from ashteams_chat.presentation.errors import register_exception_handlers
from ashteams_chat.presentation.routes import auth, chat, session
from ashteams_chat.telemetry import setup_telemetry


def create_app(
    settings: Settings | None = None,
    *,
    store: IChatStore | None = None,
    completion_client: ICompletionClient | None = None,
) -> FastAPI:
    """Build the application.

    *store* and *completion_client* default to the in-memory store and an
    OpenRouter client built from *settings*; tests pass their own.
    """
    settings = settings or get_settings()
    setup_logging(level=settings.log_level, json=settings.log_json)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Set up and tear down shared resources around the application lifetime."""
        settings.validate_runtime()

        http_client: httpx.AsyncClient | None = None
        client = completion_client
        if client is None:
            http_client = httpx.AsyncClient()
            client = CompletionClient.from_settings(settings, http_client)

        chat_store = store if store is not None else MemoryChatStore()

        app.state.settings = settings
        app.state.store = chat_store
        app.state.chat_uc = ChatUseCase(store=chat_store, completion_client=client)
        app.state.accounts = AccountUseCase(store=chat_store)

        logger.info("Application startup complete | model={}", settings.completion_model)
        yield

        if http_client is not None:
            await http_client.aclose()
        logger.info("Application shutdown complete")

    app = FastAPI(
        title="Ashteams Chat",
        description="Chats with an AI assistant for registered and anonymous users.",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_origins != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    app.include_router(chat.router)
    app.include_router(auth.router)
    app.include_router(session.router)

    # No-op when OBSERVABILITY=off
    setup_telemetry(app, settings)
    return app


def run() -> None:
    """Console entrypoint: serve the app with uvicorn."""
    import uvicorn

    uvicorn.run("ashteams_chat.main:create_app", factory=True, host="0.0.0.0", port=8000)


if __name__ == "__main__":
    run()
