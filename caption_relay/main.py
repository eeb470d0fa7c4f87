from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from caption_relay.api.pages import router as pages_router
from caption_relay.api.ws import router as ws_router
from caption_relay.core.config import Settings, settings as default_settings
from caption_relay.services.relay import CaptionRelay
from caption_relay.services.session_manager import SessionManager


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or default_settings
    relay = CaptionRelay(SessionManager(settings.SESSIONS_DIR, timezone=settings.TIMEZONE))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        # close the log cleanly when the process stops mid-session
        await relay.sessions.stop()

    app = FastAPI(title="Live Captions Relay", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.relay = relay

    # Display pages may be opened from other hosts on the LAN
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.get("/health")
    def health(request: Request):
        relay: CaptionRelay = request.app.state.relay
        session = relay.sessions.current
        return {
            "ok": True,
            "clients": len(relay.registry),
            "sessionActive": session is not None,
            "sessionFile": session.filename if session else None,
        }

    app.mount("/static", StaticFiles(directory=settings.STATIC_DIR), name="static")
    app.include_router(pages_router)
    app.include_router(ws_router)
    return app


app = create_app()
