import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

import pytz

from caption_relay.models.messages import ClientSpeechData

logger = logging.getLogger(__name__)

RULE = "====================================="
STAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass
class Session:
    file_path: Path
    started_at: datetime

    @property
    def filename(self) -> str:
        return self.file_path.name


class SessionManager:
    """
    Owns the single caption logging session.

    At most one session is open at a time. Start, stop and caption appends are
    serialized through one asyncio lock; the file writes themselves run in the
    default executor.
    """

    def __init__(
            self,
            sessions_dir: str | Path,
            timezone: Optional[str] = None,
            clock: Optional[Callable[[], datetime]] = None,
    ):
        self._dir = Path(sessions_dir)
        self._tz = pytz.timezone(timezone) if timezone else None
        self._clock = clock or self._now
        self._session: Optional[Session] = None
        self._lock = asyncio.Lock()

    @property
    def current(self) -> Optional[Session]:
        return self._session

    @property
    def active(self) -> bool:
        return self._session is not None

    async def start(self) -> str:
        """
        Open a new session log and return its filename.

        Returns the open session's filename when one is already active.
        I/O errors propagate to the caller.
        """
        async with self._lock:
            if self._session is not None:
                logger.info("Session already active: %s", self._session.filename)
                return self._session.filename

            started_at = self._local(self._clock())
            file_path = self._dir / f"caption-session-{started_at.strftime('%Y-%m-%d-%H-%M-%S')}.txt"
            header = (
                "Live Captions Session Log\n"
                f"Started: {started_at.strftime(STAMP_FORMAT)}\n"
                f"{RULE}\n"
                "\n"
            )
            file_path = await self._run(self._create, file_path, header)

            self._session = Session(file_path=file_path, started_at=started_at)
            logger.info("Session started: %s", file_path.name)
            return file_path.name

    async def stop(self) -> None:
        """Write the footer and close the session. No-op without one."""
        async with self._lock:
            session = self._session
            if session is None:
                logger.info("No active session")
                return

            ended_at = self._local(self._clock())
            footer = (
                "\n"
                f"{RULE}\n"
                f"Session ended: {ended_at.strftime(STAMP_FORMAT)}\n"
                f"Duration: {format_duration(ended_at - session.started_at)}\n"
            )
            # the session is closed even when the footer cannot be written
            self._session = None
            try:
                await self._run(self._append, session.file_path, footer)
            except OSError:
                logger.exception("Error ending session %s", session.filename)
                return
            logger.info("Session ended: %s", session.filename)

    async def log_final(self, event: ClientSpeechData) -> None:
        """Append one `[HH:MM:SS] text` line for a final caption."""
        if not event.isFinal:
            return
        async with self._lock:
            session = self._session
            if session is None:
                return

            try:
                spoken_at = self._local(event.timestamp or self._clock())
                line = f"[{spoken_at.strftime('%H:%M:%S')}] {event.text}\n"
                await self._run(self._append, session.file_path, line)
            except (OSError, ValueError, OverflowError):
                # unencodable text and out-of-range timestamps fail like I/O errors
                logger.exception("Error logging caption to %s", session.filename)

    def _now(self) -> datetime:
        if self._tz is None:
            return datetime.now().astimezone()
        return datetime.now(tz=self._tz)

    def _local(self, moment: datetime) -> datetime:
        if self._tz is None:
            return moment.astimezone()
        return moment.astimezone(self._tz)

    @staticmethod
    async def _run(fn, *args):
        return await asyncio.get_running_loop().run_in_executor(None, fn, *args)

    @staticmethod
    def _create(path: Path, text: str) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        candidate, n = path, 1
        # never reuse a log from an earlier session started within the same second
        while True:
            try:
                with open(candidate, "x", encoding="utf-8") as f:
                    f.write(text)
                return candidate
            except FileExistsError:
                candidate = path.with_name(f"{path.stem}-{n}{path.suffix}")
                n += 1

    @staticmethod
    def _append(path: Path, text: str):
        with open(path, "a", encoding="utf-8") as f:
            f.write(text)


def format_duration(elapsed) -> str:
    seconds = max(0, round(elapsed.total_seconds()))
    return f"{seconds // 60}m {seconds % 60}s"
