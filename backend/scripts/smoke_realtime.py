from __future__ import annotations

import argparse
import asyncio
import json
from typing import Optional

import httpx
import websockets


async def signin(client: httpx.AsyncClient, email: str, password: str) -> dict:
    response = await client.post("/api/auth/signin", json={"email": email, "password": password})
    response.raise_for_status()
    return response.json()


async def run_smoke(
    base_url: str,
    email: str,
    password: str,
    receiver_id: Optional[int],
    booking_id: Optional[int],
    listen_seconds: float,
) -> None:
    async with httpx.AsyncClient(base_url=base_url, timeout=10) as client:
        session = await signin(client, email, password)
    token = session["token"]
    print(f"✅ Signed in as {session['user']['name']} (id {session['user']['id']})")

    ws_url = base_url.replace("http://", "ws://").replace("https://", "wss://")
    async with websockets.connect(f"{ws_url}/ws?token={token}") as socket:
        if booking_id is not None:
            await socket.send(json.dumps({"event": "join_booking", "data": booking_id}))
        if receiver_id is not None:
            await socket.send(json.dumps({
                "event": "send_message",
                "data": {
                    "receiverId": receiver_id,
                    "bookingId": booking_id,
                    "content": "Smoke test message",
                },
            }))

        try:
            while True:
                raw = await asyncio.wait_for(socket.recv(), timeout=listen_seconds)
                print(json.dumps(json.loads(raw), indent=2))
        except asyncio.TimeoutError:
            print(f"⏱️ No events for {listen_seconds}s; closing.")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Smoke test the realtime channel against a running API.")
    parser.add_argument("--base-url", default="http://localhost:8000", help="API base URL")
    parser.add_argument("--email", required=True, help="Account email")
    parser.add_argument("--password", required=True, help="Account password")
    parser.add_argument("--receiver-id", type=int, help="Send a chat message to this user id")
    parser.add_argument("--booking-id", type=int, help="Join this booking's channel")
    parser.add_argument("--listen-seconds", type=float, default=5.0, help="Idle time before exiting")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    asyncio.run(run_smoke(
        args.base_url,
        args.email,
        args.password,
        args.receiver_id,
        args.booking_id,
        args.listen_seconds,
    ))


if __name__ == "__main__":
    main()
