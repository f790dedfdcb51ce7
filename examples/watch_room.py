"""Print every message posted to a chat room.

Logs in with a resume token, subscribes to the room's message stream,
and prints incoming messages until Ctrl+C.

    pip install ddp-latency-client

    python examples/watch_room.py --host open.rocket.chat --token <TOKEN> --room GENERAL
"""

import argparse
import asyncio
import signal

from ddp_client import connect


async def main(host: str, token: str, room_id: str):
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    def on_message(data):
        if isinstance(data, dict):
            print(f"[{data.get('u', {}).get('username', '?')}] {data.get('msg', '')}")

    async with connect(host) as client:
        client.on_close(lambda payload: stop.set())
        await client.login(token)
        client.subscribe_stream("stream-room-messages", room_id, on_message)
        print(f"Connected to {host} (session {client.session_id})")
        print(f"Watching room: {room_id}")
        print("Listening for messages... (Ctrl+C to stop)\n")

        await stop.wait()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Watch a chat room over DDP")
    parser.add_argument("--host", required=True)
    parser.add_argument("--token", required=True, help="Resume token")
    parser.add_argument("--room", default="GENERAL", help="Room id (default: GENERAL)")
    args = parser.parse_args()

    asyncio.run(main(args.host, args.token, args.room))
