import asyncio
import json
import logging
import uuid
from typing import Any, Dict, Protocol

from caption_relay.models.messages import (
    ClientSpeechData,
    ServerCaptionsCleared,
    ServerSessionStarted,
    ServerSessionStopped,
)
from caption_relay.services.session_manager import SessionManager

logger = logging.getLogger(__name__)


class Client(Protocol):
    async def send_text(self, data: str) -> None: ...


class ConnectionRegistry:
    """
    Connected client handles keyed by a short client id.
    """

    def __init__(self):
        self._clients: Dict[str, Client] = {}

    def __len__(self) -> int:
        return len(self._clients)

    def __contains__(self, client_id: str) -> bool:
        return client_id in self._clients

    def register(self, client: Client) -> str:
        client_id = f"cl_{uuid.uuid4().hex[:8]}"
        self._clients[client_id] = client
        return client_id

    def unregister(self, client_id: str) -> None:
        self._clients.pop(client_id, None)

    async def broadcast(self, payload: Dict[str, Any]) -> None:
        """Send to every registered client; clients whose send fails are dropped."""
        raw = json.dumps(payload)
        targets = list(self._clients.items())
        results = await asyncio.gather(
            *(client.send_text(raw) for _, client in targets),
            return_exceptions=True,
        )
        for (client_id, _), result in zip(targets, results):
            if isinstance(result, Exception):
                logger.warning("Dropping client %s after failed send: %s", client_id, result)
                self.unregister(client_id)


class CaptionRelay:
    """
    Fans caption events out to every connected client and feeds final
    captions to the session log.
    """

    def __init__(self, sessions: SessionManager, registry: ConnectionRegistry | None = None):
        self.sessions = sessions
        self.registry = registry or ConnectionRegistry()

    def connect(self, client: Client) -> str:
        client_id = self.registry.register(client)
        logger.info("User connected: %s (%d connected)", client_id, len(self.registry))
        return client_id

    def disconnect(self, client_id: str) -> None:
        self.registry.unregister(client_id)
        logger.info("User disconnected: %s (%d connected)", client_id, len(self.registry))

    async def start_session(self) -> Dict[str, Any]:
        try:
            filename = await self.sessions.start()
        except OSError as e:
            logger.error("Error creating session file: %s", e)
            return ServerSessionStarted(success=False, error=str(e)).model_dump(exclude_none=True)
        return ServerSessionStarted(success=True, filename=filename).model_dump(exclude_none=True)

    async def stop_session(self) -> Dict[str, Any]:
        await self.sessions.stop()
        return ServerSessionStopped(success=True).model_dump(exclude_none=True)

    async def speech_data(self, payload: Dict[str, Any]) -> None:
        """
        Log the caption when final, then rebroadcast the payload as received
        with its type switched to caption-update. Raises pydantic's
        ValidationError for malformed payloads before anything is sent.
        """
        event = ClientSpeechData.model_validate(payload)
        logger.debug("Speech data received: final=%s text=%r", event.isFinal, event.text)

        if event.isFinal:
            try:
                await self.sessions.log_final(event)
            except Exception:
                # a caption that cannot be logged is still relayed
                logger.exception("Error logging final caption")

        await self.registry.broadcast({**payload, "type": "caption-update"})

    async def clear_captions(self) -> None:
        logger.info("Clearing captions")
        await self.registry.broadcast(ServerCaptionsCleared().model_dump())
