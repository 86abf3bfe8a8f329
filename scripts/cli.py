"""
CLI to run emotion detection for a while -> JSON.
"""
from __future__ import annotations
import argparse, asyncio, json
from moodcore.config import Settings
from moodcore.context import SessionContext
from moodcore.escalation import QueuedNavigator
from moodcore.session import DetectionSession


async def detect(seconds: float, user: str) -> dict:
    settings = Settings()
    navigator = QueuedNavigator()
    context = SessionContext(user=user)
    async with DetectionSession(settings, context, navigator) as session:
        if await session.start_detection():
            await asyncio.sleep(seconds)
            await session.stop_detection()
        status = session.status(navigator.drain())
    return status.model_dump(mode="json")


def main():
    p = argparse.ArgumentParser()
    p.add_argument("--seconds", type=float, default=10.0, help="How long to run detection")
    p.add_argument("--user", default="local", help="Signed-in user name")
    p.add_argument("--out", default="output/session.json", help="Path to output JSON")
    args = p.parse_args()

    result = asyncio.run(detect(args.seconds, args.user))
    print(json.dumps(result, indent=2, ensure_ascii=False))

    # Also write to file
    import os
    os.makedirs(os.path.dirname(args.out) or ".", exist_ok=True)
    with open(args.out, "w", encoding="utf-8") as f:
        json.dump(result, f, indent=2, ensure_ascii=False)
    print(f"✅ Session written to {args.out}")

if __name__ == "__main__":
    main()
