"""
Tests for SessionManager: single-session lifecycle and the log file format.
"""

from datetime import datetime, timedelta

import pytest
import pytz

from caption_relay.models.messages import ClientSpeechData
from caption_relay.services.session_manager import SessionManager, format_duration


@pytest.fixture
def manager(sessions_dir, clock):
    return SessionManager(sessions_dir, timezone="UTC", clock=clock)


def caption(text, final=True, at=None):
    return ClientSpeechData(text=text, isFinal=final, timestamp=at)


@pytest.mark.asyncio
async def test_start_creates_one_file(manager, sessions_dir):
    filename = await manager.start()

    assert filename == "caption-session-2026-10-19-09-00-00.txt"
    assert [p.name for p in sessions_dir.iterdir()] == [filename]
    assert manager.active
    assert manager.current.filename == filename


@pytest.mark.asyncio
async def test_start_while_active_returns_same_session(manager, sessions_dir, clock):
    first = await manager.start()
    clock.advance(30)
    second = await manager.start()

    assert second == first
    assert len(list(sessions_dir.iterdir())) == 1


@pytest.mark.asyncio
async def test_stop_without_session_is_noop(manager, sessions_dir):
    await manager.stop()

    assert not manager.active
    assert not sessions_dir.exists()


@pytest.mark.asyncio
async def test_final_caption_appends_one_line(manager, sessions_dir, clock):
    filename = await manager.start()
    path = sessions_dir / filename
    before = path.read_text(encoding="utf-8")

    await manager.log_final(caption("hello", at=clock.now))

    after = path.read_text(encoding="utf-8")
    assert after[len(before):] == "[09:00:00] hello\n"


@pytest.mark.asyncio
async def test_interim_caption_appends_nothing(manager, sessions_dir):
    filename = await manager.start()
    path = sessions_dir / filename
    before = path.read_text(encoding="utf-8")

    await manager.log_final(caption("hel", final=False))

    assert path.read_text(encoding="utf-8") == before


@pytest.mark.asyncio
async def test_final_caption_without_session_writes_nothing(manager, sessions_dir):
    await manager.log_final(caption("hello"))

    assert not sessions_dir.exists()


@pytest.mark.asyncio
async def test_full_session_log(manager, sessions_dir, clock):
    t0 = clock.now
    filename = await manager.start()

    clock.advance(5)
    await manager.log_final(caption("hello", at=clock.now))
    await manager.log_final(caption("hel", final=False))

    clock.advance(120)
    await manager.stop()

    assert not manager.active
    assert (sessions_dir / filename).read_text(encoding="utf-8") == (
        "Live Captions Session Log\n"
        f"Started: {t0:%Y-%m-%d %H:%M:%S}\n"
        "=====================================\n"
        "\n"
        "[09:00:05] hello\n"
        "\n"
        "=====================================\n"
        "Session ended: 2026-10-19 09:02:05\n"
        "Duration: 2m 5s\n"
    )


@pytest.mark.asyncio
async def test_caption_time_uses_configured_timezone(sessions_dir, clock):
    manager = SessionManager(sessions_dir, timezone="Europe/Warsaw", clock=clock)
    filename = await manager.start()

    # epoch-millisecond timestamps from the browser arrive as UTC
    event = ClientSpeechData.model_validate(
        {"text": "dzień dobry", "isFinal": True, "timestamp": 1792400400000}
    )
    await manager.log_final(event)

    lines = (sessions_dir / filename).read_text(encoding="utf-8").splitlines()
    expected = datetime.fromtimestamp(1792400400, tz=pytz.UTC).astimezone(pytz.timezone("Europe/Warsaw"))
    assert lines[-1] == f"[{expected:%H:%M:%S}] dzień dobry"
    assert filename == "caption-session-2026-10-19-11-00-00.txt"


@pytest.mark.asyncio
async def test_restart_in_same_second_gets_new_file(manager, sessions_dir):
    first = await manager.start()
    await manager.stop()
    second = await manager.start()

    assert second != first
    assert second == "caption-session-2026-10-19-09-00-00-1.txt"
    assert len(list(sessions_dir.iterdir())) == 2


@pytest.mark.asyncio
async def test_start_propagates_io_error(tmp_path, clock):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x")
    manager = SessionManager(blocker, clock=clock)

    with pytest.raises(OSError):
        await manager.start()
    assert not manager.active


@pytest.mark.asyncio
async def test_append_errors_are_swallowed(manager, sessions_dir, clock, caplog):
    filename = await manager.start()
    path = sessions_dir / filename
    # replace the log with a directory so every append fails
    path.unlink()
    path.mkdir()

    await manager.log_final(caption("lost", at=clock.now))
    await manager.stop()

    assert not manager.active
    assert "Error logging caption" in caplog.text
    assert "Error ending session" in caplog.text


@pytest.mark.parametrize("seconds,expected", [
    (0, "0m 0s"),
    (59.4, "0m 59s"),
    (59.6, "1m 0s"),
    (125, "2m 5s"),
    (3600, "60m 0s"),
])
def test_format_duration(seconds, expected):
    assert format_duration(timedelta(seconds=seconds)) == expected
