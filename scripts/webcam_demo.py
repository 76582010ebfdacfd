from __future__ import annotations

import argparse
import logging
import os
import platform
import sys

import cv2

# Allow running without installing the package (repo-local usage).
REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC_ROOT = os.path.join(REPO_ROOT, "src")
if SRC_ROOT not in sys.path:
    sys.path.insert(0, SRC_ROOT)

from nailtryon import RenderSurface, TryOnConfig, TryOnSession  # noqa: E402
from nailtryon.landmarks import (  # noqa: E402
    FallbackLandmarkProvider,
    LandmarkProvider,
    MediaPipeHandModel,
    SkinContourProvider,
)
from nailtryon.types import FINGER_NAMES  # noqa: E402

WINDOW = "nailtryon - live try-on"


def main() -> int:
    ap = argparse.ArgumentParser(description="Live nail try-on from the webcam.")
    ap.add_argument("--design", required=True, help="Path to the nail design image")
    ap.add_argument("--camera", type=int, default=0, help="Camera index (default: 0)")
    ap.add_argument("--width", type=int, default=960, help="Surface width in pixels")
    ap.add_argument("--finger", default="index", choices=FINGER_NAMES, help="Finger to place the nail on")
    ap.add_argument(
        "--no-mirror",
        action="store_true",
        help="Disable horizontal mirroring (default is mirrored/selfie mode)",
    )
    args = ap.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    if platform.system() == "Darwin":
        cap = cv2.VideoCapture(args.camera, cv2.CAP_AVFOUNDATION)
    else:
        cap = cv2.VideoCapture(args.camera)
    if not cap.isOpened():
        raise RuntimeError(
            f"Could not open camera index {args.camera}. "
            "On macOS: System Settings -> Privacy & Security -> Camera -> allow your terminal/Cursor."
        )

    config = TryOnConfig(finger=args.finger, default_width=args.width)
    model = MediaPipeHandModel.from_config(config, static_image_mode=False)
    provider = FallbackLandmarkProvider(LandmarkProvider(model, args.finger), SkinContourProvider(args.finger))

    with provider, RenderSurface(config=config) as surface, TryOnSession(
        surface=surface, provider=provider, config=config
    ) as session:
        session.set_nail_design(args.design)
        state = {"paused": False}

        def on_mouse(event, x, y, flags, _param) -> None:
            if event == cv2.EVENT_LBUTTONDOWN:
                if session.begin_interaction(x, y) is not None:
                    state["paused"] = True  # hold the frame while the nail is edited by hand
            elif event == cv2.EVENT_MOUSEMOVE and flags & cv2.EVENT_FLAG_LBUTTON:
                session.drag_interaction(x, y, snap=bool(flags & cv2.EVENT_FLAG_SHIFTKEY))
            elif event == cv2.EVENT_LBUTTONUP:
                session.end_interaction()

        def on_opacity(value: int) -> None:
            session.set_opacity(value / 100.0)

        cv2.namedWindow(WINDOW)
        cv2.setMouseCallback(WINDOW, on_mouse)
        cv2.createTrackbar("opacity %", WINDOW, 100, 100, on_opacity)

        while True:
            if not state["paused"]:
                ok, frame = cap.read()
                if not ok:
                    break
                if not args.no_mirror:
                    frame = cv2.flip(frame, 1)
                session.process_frame(frame, update_background=True)

            out = session.render()
            snap = session.snapshot()
            cv2.putText(
                out,
                f"hand: {'yes' if snap.has_landmark else 'no'} | space: pause/resume | q: quit",
                (12, 28),
                cv2.FONT_HERSHEY_SIMPLEX,
                0.7,
                (255, 255, 255),
                2,
                cv2.LINE_AA,
            )

            cv2.imshow(WINDOW, out)
            key = cv2.waitKey(1) & 0xFF
            if key in (ord("q"), 27):
                break
            if key == ord(" "):
                state["paused"] = not state["paused"]

    cap.release()
    cv2.destroyAllWindows()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
