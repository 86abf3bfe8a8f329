
"""Run the detection session with a live camera overlay window.

Usage:
    uvicorn moodapi.main:app --reload  # (separate, for API)
    python scripts/live_overlay.py --user alice  # (to see camera overlay window)

Press 's' to start/stop detection, 'q' to quit the window.
"""
from __future__ import annotations
import argparse
import asyncio
import logging

import cv2

from moodcore.config import Settings
from moodcore.context import SessionContext
from moodcore.escalation import QueuedNavigator
from moodcore.session import DetectionSession

WINDOW = "Emotion Detection (s start/stop, q quit)"


async def run(user: str) -> None:
    s = Settings()
    navigator = QueuedNavigator()
    async with DetectionSession(s, SessionContext(user=user), navigator) as session:
        print(f"state: {session.state.value}")
        while not session.released:
            frame = session.overlay.frame
            if frame is None and not session.is_detecting:
                # the loop owns the capture while detecting
                frame = await session.permission.read_frame()
            if frame is not None:
                cv2.imshow(WINDOW, frame)

            key = cv2.waitKey(1) & 0xFF
            if key == ord("q"):
                break
            if key == ord("s"):
                if session.is_detecting:
                    await session.stop_detection()
                else:
                    await session.start_detection()
                print(f"state: {session.state.value} {session.detection_error or ''}")

            targets = navigator.drain()
            for target in targets:
                print(f"-> navigate {target}")
            if s.ESCALATION_TARGET in targets:
                break
            await asyncio.sleep(0.03)
    cv2.destroyAllWindows()


if __name__ == '__main__':
    p = argparse.ArgumentParser()
    p.add_argument("--user", default="local", help="Signed-in user name")
    args = p.parse_args()
    logging.basicConfig(level=logging.INFO)
    asyncio.run(run(args.user))
