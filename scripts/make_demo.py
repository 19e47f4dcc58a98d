#!/usr/bin/env python3
"""
Write a synthetic calibration image and landmark recording for the replay CLI.

Usage:
    python3 scripts/make_demo.py --out data/demo
    python -m airband.app replay --image data/demo/paper.png --landmarks data/demo/landmarks.jsonl
"""
import os, sys, json, argparse, logging

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(message)s")
logger = logging.getLogger("make_demo")

import cv2
import numpy as np


def paper_image(width=640, height=480):
    img = np.full((height, width, 3), 30, dtype=np.uint8)
    cv2.rectangle(img, (160, 260), (480, 420), (230, 230, 230), thickness=-1)
    return img


def strike_ticks(fps=30.0, strikes=4):
    """A fingertip hovering over the paper and tapping down on several keys."""
    ticks = []
    t = 0.0
    for k in range(strikes):
        # Mirrored x: normalized 0.3 .. 0.7 maps onto the paper
        x = 0.35 + 0.1 * k
        for y in (0.60, 0.61, 0.62, 0.72, 0.74, 0.74, 0.74):
            ticks.append({"t": round(t, 4), "hands": [[x, y, -0.02]]})
            t += 1.0 / fps
        t += 0.2
    return ticks


def main():
    p = argparse.ArgumentParser()
    p.add_argument("--out", type=str, default="data/demo")
    args = p.parse_args()

    os.makedirs(args.out, exist_ok=True)
    img_path = os.path.join(args.out, "paper.png")
    cv2.imwrite(img_path, paper_image())

    rec_path = os.path.join(args.out, "landmarks.jsonl")
    ticks = strike_ticks()
    with open(rec_path, "w") as f:
        for tick in ticks:
            f.write(json.dumps(tick) + "\n")

    logger.info(f"Wrote {img_path} and {rec_path} ({len(ticks)} ticks)")


if __name__ == "__main__":
    main()
