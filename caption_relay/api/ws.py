import json
import logging
from typing import Any, Dict

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from fastapi.websockets import WebSocketState
from pydantic import ValidationError

from caption_relay.models.messages import CLIENT_MESSAGES, ServerConnected, ServerError
from caption_relay.services.relay import CaptionRelay

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws")
async def ws_captions(websocket: WebSocket):
    relay: CaptionRelay = websocket.app.state.relay

    await websocket.accept()
    client_id = relay.connect(websocket)

    try:
        await _send(websocket, ServerConnected(clientId=client_id).model_dump())

        while True:
            raw = await websocket.receive_text()

            try:
                data = json.loads(raw)
                if not isinstance(data, dict):
                    raise ValueError("Message must be a JSON object")
                msg_type = data.get("type")
                model = CLIENT_MESSAGES.get(msg_type)
                if model is None:
                    raise ValueError(f"Unknown message type: {msg_type}")
                model.model_validate(data)
            except (ValueError, ValidationError) as e:
                # ValidationError and JSONDecodeError are both ValueErrors
                await _send(websocket, ServerError(code="bad_request", message=str(e)).model_dump())
                continue

            if msg_type == "start-session":
                await _send(websocket, await relay.start_session())

            elif msg_type == "stop-session":
                await _send(websocket, await relay.stop_session())

            elif msg_type == "speech-data":
                await relay.speech_data(data)

            elif msg_type == "clear-captions":
                await relay.clear_captions()

    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.exception("Connection %s failed", client_id)
        if websocket.application_state == WebSocketState.CONNECTED:
            try:
                await _send(websocket, ServerError(code="internal_error", message=str(e)).model_dump())
                await websocket.close()
            except Exception:
                logger.debug("Could not close connection %s cleanly", client_id)
    finally:
        relay.disconnect(client_id)


async def _send(ws: WebSocket, payload: Dict[str, Any]):
    # Always send text JSON for compatibility
    await ws.send_text(json.dumps(payload))
