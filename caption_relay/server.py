import asyncio
import logging
import socket
from typing import List, Optional

import uvicorn
from fastapi import FastAPI

from caption_relay.core.config import Settings, settings as default_settings
from caption_relay.core.logging_config import setup_logging

logger = logging.getLogger(__name__)

PAGES = (
    ("Control Panel", "/control"),
    ("Captions Display", "/captions"),
    ("Interim Captions", "/interim-captions"),
)


def listener_configs(app: FastAPI, settings: Settings) -> List[uvicorn.Config]:
    """
    One uvicorn config per listener, all serving the same app.

    The plain listener always runs and owns the app lifespan. The TLS listener
    is added only when both certificate files exist.
    """
    log_level = settings.LOG_LEVEL.lower()
    configs = [uvicorn.Config(app, host=settings.HOST, port=settings.PORT, log_level=log_level)]
    if settings.tls_enabled:
        configs.append(uvicorn.Config(
            app,
            host=settings.HOST,
            port=settings.HTTPS_PORT,
            ssl_certfile=settings.SSL_CERTFILE,
            ssl_keyfile=settings.SSL_KEYFILE,
            lifespan="off",
            log_level=log_level,
        ))
    return configs


def local_ip() -> str:
    """Best guess at the LAN address other machines can reach us on."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        # no packet is sent; connect only selects the outbound interface
        sock.connect(("10.255.255.255", 1))
        return sock.getsockname()[0]
    except OSError:
        return "localhost"
    finally:
        sock.close()


def log_banner(settings: Settings, ip: Optional[str] = None) -> None:
    ip = ip or local_ip()
    logger.info("Live Captions Relay running on:")
    logger.info("  HTTP Local:    http://localhost:%d", settings.PORT)
    logger.info("  HTTP Network:  http://%s:%d", ip, settings.PORT)
    if settings.tls_enabled:
        logger.info("  HTTPS Local:   https://localhost:%d", settings.HTTPS_PORT)
        logger.info("  HTTPS Network: https://%s:%d", ip, settings.HTTPS_PORT)

    for label, path in PAGES:
        logger.info("  %-17s http://%s:%d%s", label + ":", ip, settings.PORT, path)

    if settings.tls_enabled:
        for label, path in PAGES:
            logger.info("  %-17s https://%s:%d%s", label + ":", ip, settings.HTTPS_PORT, path)
    else:
        logger.warning(
            "SSL certificates not found at %s / %s; HTTPS disabled. "
            "Browsers only allow microphone access from remote machines over HTTPS.",
            settings.SSL_CERTFILE, settings.SSL_KEYFILE,
        )


async def serve(app: FastAPI, settings: Settings) -> None:
    """Run every listener until one of them stops, then stop the rest."""
    servers = [uvicorn.Server(config) for config in listener_configs(app, settings)]
    tasks = [asyncio.create_task(server.serve()) for server in servers]

    _, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
    for server in servers:
        server.should_exit = True
    if pending:
        await asyncio.wait(pending)
    for task in tasks:
        # surface bind failures and other startup errors
        task.result()


def main() -> None:
    setup_logging(default_settings.LOG_LEVEL)

    from caption_relay.main import app

    log_banner(default_settings)
    try:
        asyncio.run(serve(app, default_settings))
    except KeyboardInterrupt:
        pass
