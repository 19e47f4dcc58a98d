import cv2

from ..calibration.types import Frame


def load_frame(path: str) -> Frame:
    """Read an image file as a BGR calibration frame."""
    pixels = cv2.imread(path, cv2.IMREAD_COLOR)
    if pixels is None:
        raise FileNotFoundError(f"Could not read image: {path}")
    return Frame(pixels=pixels)
