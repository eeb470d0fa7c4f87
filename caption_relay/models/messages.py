from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict


# Client → Server messages

class ClientStartSession(BaseModel):
    type: Literal["start-session"] = "start-session"


class ClientStopSession(BaseModel):
    type: Literal["stop-session"] = "stop-session"


class ClientSpeechData(BaseModel):
    """
    One recognition result from the control panel.

    `timestamp` takes an ISO-8601 string or epoch seconds/milliseconds
    (browser Date.now()). Unknown keys are kept so the broadcast stays verbatim.
    """
    model_config = ConfigDict(extra="allow")

    type: Literal["speech-data"] = "speech-data"
    text: str
    isFinal: bool = False
    timestamp: Optional[datetime] = None


class ClientClearCaptions(BaseModel):
    type: Literal["clear-captions"] = "clear-captions"


CLIENT_MESSAGES = {
    "start-session": ClientStartSession,
    "stop-session": ClientStopSession,
    "speech-data": ClientSpeechData,
    "clear-captions": ClientClearCaptions,
}


# Server → Client messages

class ServerConnected(BaseModel):
    type: Literal["connected"] = "connected"
    clientId: str


class ServerSessionStarted(BaseModel):
    type: Literal["session-started"] = "session-started"
    success: bool
    filename: Optional[str] = None
    error: Optional[str] = None


class ServerSessionStopped(BaseModel):
    type: Literal["session-stopped"] = "session-stopped"
    success: bool


class ServerCaptionsCleared(BaseModel):
    type: Literal["captions-cleared"] = "captions-cleared"


class ServerError(BaseModel):
    type: Literal["error"] = "error"
    code: str  # "bad_request" | "internal_error"
    message: str
