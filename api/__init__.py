"""REST API module for the chat marketplace.

This module provides HTTP endpoints for:
- Receiving inbound chat messages from the bridge
- System health monitoring
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from blobs import BlobStore, FileBlobStore
from catalog import TradeCatalog
from config import settings_conf
from gateway import MessagingGateway
from gateway.bridge import BridgeGateway
from ledger import open_ledger
from payments import PaymentCodeIssuer
from reports import Reports
from router import ConversationRouter

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Dict[str, Any]] = None,
    gateway: Optional[MessagingGateway] = None,
    blob_store: Optional[BlobStore] = None
) -> FastAPI:
    """Create the FastAPI app.

    Args:
        settings: Settings dict, defaults to the loaded settings.conf
        gateway: Messaging gateway, defaults to the configured chat bridge
        blob_store: Image store, defaults to files under blob_dir
    """
    settings = settings if settings is not None else settings_conf

    # Lifecycle management
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Open the ledger and wire the components for the app's lifetime."""
        logger.info("Initializing API...")
        async with open_ledger(settings['db_url']) as ledger:
            app_gateway = gateway or BridgeGateway(
                settings['bridge_url'],
                settings['bridge_token'],
                settings['bridge_timeout']
            )
            app_blob_store = blob_store or FileBlobStore(settings['blob_dir'])
            catalog = TradeCatalog(ledger, app_blob_store)
            issuer = PaymentCodeIssuer(
                ledger,
                catalog,
                code_digits=settings['code_digits'],
                max_attempts=settings['code_max_attempts']
            )

            app.state.ledger = ledger
            app.state.router = ConversationRouter(
                app_gateway,
                catalog,
                issuer,
                Reports(ledger),
                contact_card_path=settings['contact_card_path']
            )
            logger.info("API ready")

            yield

            logger.info("Shutting down API...")
            app.state.router = None
            app.state.ledger = None

    app = FastAPI(
        title="Chat Marketplace API",
        description="Inbound message endpoint for the chat marketplace bot",
        version="1.0.0",
        lifespan=lifespan
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    async def root():
        return {
            "name": "Chat Marketplace API",
            "version": "1.0.0",
            "status": "running"
        }

    from .messages import router as messages_router
    from .system import router as system_router

    app.include_router(messages_router)
    app.include_router(system_router)

    return app


app = create_app()

__all__ = ['app', 'create_app']
