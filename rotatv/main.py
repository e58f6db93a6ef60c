"""
RotaTV main application entry point.

Wires the catalog, presenter, chat transport and rotation scheduler
together and exposes the status API.
"""

import argparse
import asyncio
import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Optional

import uvicorn
from fastapi import FastAPI

from rotatv import __version__
from rotatv.catalog import load_catalog
from rotatv.chat import ChatBot, ChatTransport, CommandRouter, ConsoleChatTransport, TwitchChatTransport
from rotatv.config import RotaTVConfig, get_config, load_config
from rotatv.playout import RotationScheduler
from rotatv.presenter import LoggingPresenter, ObsPresenter, Presenter
from rotatv.tasks import TaskScheduler
from rotatv.utils.logging_setup import parse_size, setup_logging

logger = logging.getLogger(__name__)

COOLDOWN_CLEANUP_TASK = "cooldown_cleanup"


def build_presenter(config: RotaTVConfig) -> Presenter:
    """Create the presenter named by ``presenter.kind``."""
    presenter = config.presenter
    if presenter.kind == "obs":
        return ObsPresenter(
            url=presenter.url,
            password=presenter.password,
            activity_item=presenter.activity_item,
            activity_scene=presenter.default_scene,
            request_timeout=presenter.request_timeout,
        )
    if presenter.kind != "logging":
        logger.warning(f"Unknown presenter kind {presenter.kind!r}, using logging presenter")
    return LoggingPresenter()


def build_transport(config: RotaTVConfig) -> ChatTransport:
    """Create the chat transport named by ``chat.transport``."""
    chat = config.chat
    if chat.transport == "twitch":
        channels = [chat.channel]
        if chat.control_room:
            channels.append(chat.control_room)
        return TwitchChatTransport(
            client_id=chat.client_id,
            client_secret=chat.client_secret,
            bot_id=chat.bot_id,
            token=chat.token,
            refresh_token=chat.refresh_token,
            channels=channels,
            prefix=chat.prefix,
            connect_timeout=chat.connect_timeout,
        )
    if chat.transport != "console":
        logger.warning(f"Unknown chat transport {chat.transport!r}, using console")
    return ConsoleChatTransport(destination=chat.channel)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Startup: load catalog, connect presenter and chat, start the rotation.
    Shutdown: stop them again in reverse order.
    """
    logger.info(f"Starting RotaTV v{__version__}")
    config = get_config()

    catalog = load_catalog(config.rotation.catalog_file)
    logger.info(
        f"Catalog loaded: {len(catalog.vods)} videos, {len(catalog.interstitials)} interstitials"
    )

    presenter = build_presenter(config)
    await presenter.connect()

    transport = build_transport(config)

    async def announce(text: str) -> None:
        await transport.send(config.chat.channel, text)

    tasks = TaskScheduler()
    rotation = RotationScheduler(
        catalog,
        presenter,
        rotation=config.rotation,
        voting=config.voting,
        scenes=config.presenter,
        announce=announce,
        task_scheduler=tasks,
        command_prefix=config.chat.prefix,
    )
    router = CommandRouter(rotation, config.chat, transport.send, announcements=config.announcements)
    tasks.add_task(COOLDOWN_CLEANUP_TASK, router.cooldowns.cleanup, 60)
    bot = ChatBot(transport, router)

    app.state.config = config
    app.state.rotation = rotation
    app.state.chat_bot = bot

    await bot.start()
    await rotation.start()
    logger.info("RotaTV started")

    yield

    logger.info("Shutting down RotaTV")
    await rotation.stop()
    try:
        await bot.stop()
    except Exception as e:
        logger.warning(f"Error stopping chat bot: {e}")
    try:
        await presenter.close()
    except Exception as e:
        logger.warning(f"Error closing presenter: {e}")
    logger.info("RotaTV shutdown complete")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    app = FastAPI(
        title="RotaTV",
        description="Broadcast rotation scheduler with chat voting",
        version=__version__,
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    from rotatv.api import api_router
    app.include_router(api_router)

    return app


async def run_headless() -> None:
    """Run the rotation and chat bot without the HTTP server."""
    app = FastAPI()
    async with lifespan(app):
        await asyncio.Event().wait()


def main(argv: Optional[list[str]] = None) -> None:
    """Run RotaTV under uvicorn."""
    parser = argparse.ArgumentParser(prog="rotatv", description="Run the RotaTV rotation service")
    parser.add_argument("-c", "--config", default=os.environ.get("ROTATV_CONFIG"), help="Path to config.yaml")
    parser.add_argument("--host", help="Override server.host")
    parser.add_argument("--port", type=int, help="Override server.port")
    args = parser.parse_args(argv)

    config = load_config(args.config)
    setup_logging(
        log_level=config.logging.level,
        log_file=config.logging.file,
        log_to_file=config.logging.to_file,
        max_bytes=parse_size(config.logging.max_size),
        backup_count=config.logging.backup_count,
        log_format=config.logging.format,
    )
    if args.config:
        logger.info(f"Configuration loaded from {Path(args.config).resolve()}")

    if not config.server.enabled:
        asyncio.run(run_headless())
        return

    uvicorn.run(
        create_app(),
        host=args.host or config.server.host,
        port=args.port or config.server.port,
        log_level=config.server.log_level.lower(),
        log_config=None,
    )


if __name__ == "__main__":
    main()
