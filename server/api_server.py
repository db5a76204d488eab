"""FastAPI application entry point for docqa_bridge."""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shared.logging.logging_setup import setup_logging
from shared.helper.HelperConfig import HelperConfig
from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.clients.llm.LLMClientManager import LLMClientManager
from shared.stores.StoreInterface import StoreInterface
from shared.stores.StoreManager import StoreManager
from services.chat.ChatService import ChatService
from services.ingestion.IngestionService import IngestionService
from services.ingestion.TextExtractor import TextExtractor
from server.dependencies.identity import identity_middleware
from server.routers.ChatRouter import router as chat_router
from server.routers.DocumentRouter import router as document_router
from server.routers.StatsRouter import router as stats_router

logging = setup_logging()
app_version = os.getenv("APP_VERSION", "unknown")


def create_app(
    store: StoreInterface | None = None,
    llm_client: LLMClientInterface | None = None,
    extractor: TextExtractor | None = None,
) -> FastAPI:
    """Build the application.

    Collaborators that are not passed in are created from the environment
    when the app starts (STORE_ENGINE, LLM_ENGINE).
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        # when the app starts
        app.state.logging = logging
        app.state.helper_config = HelperConfig(logger=logging)

        app_store = store or StoreManager(helper_config=app.state.helper_config).get_store()
        app_llm_client = llm_client or LLMClientManager(helper_config=app.state.helper_config).get_client()
        app_extractor = extractor or TextExtractor(helper_config=app.state.helper_config)

        logging.info("Booting store '%s' and LLM client...", app_store.get_engine_name())
        await app_store.boot()
        await app_llm_client.boot()

        app.state.store = app_store
        app.state.llm_client = app_llm_client
        app.state.ingestion_service = IngestionService(
            helper_config=app.state.helper_config,
            store=app_store,
            llm_client=app_llm_client,
            extractor=app_extractor,
        )
        app.state.chat_service = ChatService(
            helper_config=app.state.helper_config,
            llm_client=app_llm_client,
        )

        await check_connections(app_llm_client)

        # while the app is running...
        yield

        # when the app shuts down
        logging.info("Shutting down, closing LLM client and store...")
        await app_llm_client.close()
        await app_store.close()
        logging.info("Shutdown complete.")

    app = FastAPI(
        title="docqa_bridge",
        description=(
            "Question answering over uploaded documents. Uploads are split into chunks, "
            "embedded and stored per browser identity; questions are answered from the "
            "most similar chunks as a server-sent events stream with source citations."
        ),
        version=app_version,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(identity_middleware)

    app.include_router(document_router)
    app.include_router(chat_router)
    app.include_router(stats_router)
    return app


async def check_connections(llm_client: LLMClientInterface) -> None:
    """Check that the LLM backend is reachable on startup.

    Failures are logged, not raised: documents can still be listed and
    deleted, but ingestion and chat will fail until the backend is up.
    """
    try:
        result: httpx.Response = await llm_client.do_healthcheck()
    except httpx.HTTPError as e:
        logging.warning("LLM client '%s' is not reachable: %s. Embedding and chat will fail.", llm_client.__class__.__name__, e)
        return
    if not result.is_success:
        logging.warning(
            "LLM client '%s' is not reachable (status %d). Embedding and chat will fail.",
            llm_client.__class__.__name__,
            result.status_code,
        )


app = create_app()


if __name__ == "__main__":
    import uvicorn

    logging.info(
        "Starting docqa_bridge API Server v%s from root dir: %s on port 8000...",
        app_version,
        os.environ.get("ROOT_DIR", "unknown"),
    )
    uvicorn.run(app, host="0.0.0.0", port=8000)
