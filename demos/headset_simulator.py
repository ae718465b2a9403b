"""
Plays the headset side of a session: streams heart-rate samples to a running
heartwood server and prints the render commands it sends back.

    python demos/headset_simulator.py --url ws://127.0.0.1:8080/ws --rate 70
"""
import argparse
import random
import threading
import time

import msgpack
from websockets import ConnectionClosed
from websockets.sync.client import connect

from heartwood.commands import MessageType, Notification, SampleMessage


def listen(ws) -> None:
    scale = None
    try:
        for data in ws:
            frame = msgpack.unpackb(data)
            if frame["type"] != MessageType.BUNDLE:
                continue
            for cmd in frame["cmds"]:
                if cmd["cmd"] == "update_scale":
                    scale = cmd["value"]
                    print(f"scale {scale:.5f}")
                else:
                    print(cmd["cmd"], "at scale", scale)
    except ConnectionClosed:
        pass


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--url", default="ws://127.0.0.1:8080/ws")
    parser.add_argument("--session-id", default="simulator")
    parser.add_argument("--rate", type=float, default=None, help="fixed rate, random 60-120 bpm when omitted")
    parser.add_argument("--interval", type=float, default=1.0)
    args = parser.parse_args()

    with connect(f"{args.url}?session_id={args.session_id}") as ws:
        threading.Thread(target=listen, args=(ws,), daemon=True).start()
        timestamp = 1
        while True:
            rate = args.rate if args.rate is not None else random.uniform(60, 120)
            ws.send(msgpack.packb(SampleMessage(timestamp=timestamp, rate=rate).model_dump()))
            ws.send(msgpack.packb(Notification().model_dump()))
            print(f"sent {rate:.1f} bpm")
            timestamp += 1
            time.sleep(args.interval)


if __name__ == '__main__':
    main()
