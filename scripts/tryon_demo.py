from __future__ import annotations

import argparse
import dataclasses
import logging
import os
import sys

import cv2

# Allow running without installing the package (repo-local usage).
REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC_ROOT = os.path.join(REPO_ROOT, "src")
if SRC_ROOT not in sys.path:
    sys.path.insert(0, SRC_ROOT)

from nailtryon import RenderSurface, TryOnConfig, TryOnSession  # noqa: E402
from nailtryon.drawing import draw_fingertips, draw_nail_positions, draw_text  # noqa: E402
from nailtryon.fingertips import nail_positions, synthetic_nail_positions  # noqa: E402
from nailtryon.landmarks import (  # noqa: E402
    FallbackLandmarkProvider,
    LandmarkProvider,
    MediaPipeHandModel,
    SkinContourProvider,
)
from nailtryon.transform import reproject_point  # noqa: E402
from nailtryon.types import FINGER_NAMES  # noqa: E402


def main() -> int:
    ap = argparse.ArgumentParser(description="Composite a nail design onto a hand photo.")
    ap.add_argument("--hand", required=True, help="Path to the hand photo")
    ap.add_argument("--design", required=True, help="Path to the nail design image")
    ap.add_argument("--out", required=True, help="Path to the output image (PNG)")
    ap.add_argument("--finger", default="index", choices=FINGER_NAMES, help="Finger to place the nail on")
    ap.add_argument("--width", type=int, default=500, help="Surface width in pixels")
    ap.add_argument("--opacity", type=float, default=None, help="Nail layer opacity (0-1)")
    ap.add_argument("--fallback-only", action="store_true", help="Skip MediaPipe; use skin-colour detection")
    ap.add_argument("--extract-design", action="store_true", help="Cut the design into a nail-shaped ellipse")
    ap.add_argument("--debug", action="store_true", help="Draw detected fingertips / nail boxes")
    args = ap.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    config = TryOnConfig(finger=args.finger, default_width=args.width)
    fallback = SkinContourProvider(args.finger)
    if args.fallback_only:
        provider = fallback
    else:
        model = MediaPipeHandModel.from_config(config)
        provider = FallbackLandmarkProvider(LandmarkProvider(model, args.finger), fallback)

    with provider, RenderSurface(config=config) as surface, TryOnSession(
        surface=surface, provider=provider, config=config, extract_design=args.extract_design
    ) as session:
        session.set_background(args.hand)
        session.set_nail_design(args.design)
        if args.opacity is not None and not session.set_opacity(args.opacity):
            print(f"opacity {args.opacity} not applied")

        snap = session.snapshot()
        out = session.render(show_controls=False)

        if args.debug:
            background = surface.background
            if background is not None and fallback.last_fingertips:
                tips = []
                for tip in fallback.last_fingertips:
                    x, y = reproject_point(
                        tip.x, tip.y, (background.width, background.height), surface.viewport_size
                    )
                    tips.append(dataclasses.replace(tip, x=int(round(x)), y=int(round(y))))
                draw_fingertips(out, tips)
                draw_nail_positions(out, nail_positions(tips))
            elif not snap.has_landmark:
                draw_nail_positions(out, synthetic_nail_positions(*surface.viewport_size), color=(0, 165, 255))
                draw_text(out, "no hand detected", (12, 28))

    ok = cv2.imwrite(args.out, out)
    if not ok:
        raise RuntimeError(f"Could not write output image: {args.out}")

    print(f"state: {snap.state.value} has_landmark={snap.has_landmark} opacity={snap.opacity:.2f}")
    if snap.current_transform is not None:
        t = snap.current_transform
        print(f"nail: center=({t.left:.1f}, {t.top:.1f}) scale={t.scale_x:.3f} angle={t.angle:.1f}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
