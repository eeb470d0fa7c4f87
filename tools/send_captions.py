# python tools/send_captions.py --file talk.txt --session

import argparse
import asyncio
import json
import time

import websockets


def caption_events(path, interim=True):
    """Yield speech-data payloads for each non-empty line, with word-by-word interim results first."""
    with open(path, encoding="utf-8") as f:
        for line in f:
            text = line.strip()
            if not text:
                continue
            if interim:
                words = text.split()
                for n in range(1, len(words)):
                    yield {"type": "speech-data", "text": " ".join(words[:n]), "isFinal": False,
                           "timestamp": int(time.time() * 1000)}
            yield {"type": "speech-data", "text": text, "isFinal": True,
                   "timestamp": int(time.time() * 1000)}


async def expect(ws, msg_type, **match):
    """Read until a message of `msg_type` carrying the `match` fields arrives, printing broadcasts on the way."""
    while True:
        resp = json.loads(await ws.recv())
        if resp.get("type") == "error":
            raise RuntimeError(resp)
        if resp.get("type") == "caption-update" and resp.get("isFinal"):
            print(f"  <- {resp['text']}")
        if resp.get("type") == msg_type and all(resp.get(k) == v for k, v in match.items()):
            return resp


async def run(url, path, session, delay, interim):
    print(f"Connecting to {url}")
    async with websockets.connect(url, ping_interval=20) as ws:
        hello = await expect(ws, "connected")
        print("Connected as", hello["clientId"])

        if session:
            await ws.send(json.dumps({"type": "start-session"}))
            started = await expect(ws, "session-started")
            if not started["success"]:
                raise RuntimeError(started)
            print("Session started:", started["filename"])

        for event in caption_events(path, interim=interim):
            await ws.send(json.dumps(event))
            # every sender also receives its own broadcast; other senders may interleave
            await expect(ws, "caption-update", text=event["text"], isFinal=event["isFinal"],
                         timestamp=event["timestamp"])
            await asyncio.sleep(delay)

        if session:
            await ws.send(json.dumps({"type": "stop-session"}))
            await expect(ws, "session-stopped")
            print("Session stopped")


if __name__ == "__main__":
    ap = argparse.ArgumentParser()
    ap.add_argument("--url", default="ws://127.0.0.1:3000/ws", help="Relay WebSocket URL")
    ap.add_argument("--file", required=True, help="Text file, one caption per line")
    ap.add_argument("--session", action="store_true", help="Log the captions to a session file")
    ap.add_argument("--delay", type=float, default=0.3, help="Seconds between events")
    ap.add_argument("--no-interim", action="store_true", help="Send final captions only")
    args = ap.parse_args()
    asyncio.run(run(args.url, args.file, args.session, args.delay, not args.no_interim))
