import logging
from dataclasses import replace
from typing import Tuple

import cv2
import numpy as np

from .detpar import DetectorParameter
from .geometry import rotation_matrix, transform_shape
from .shapes import used_mask

logger = logging.getLogger(__name__)


def _shift(value, offset):
    return None if value is None else value - offset


class FaceRoiExtractor:
    """Crops a region of interest around a face and rotates it upright."""
    def __init__(self, border_frac: float = 1.0):
        if border_frac < 0:
            raise ValueError(f"border_frac must be non-negative, got {border_frac}")
        self.border_frac = border_frac
        logger.info("Face ROI extractor initialized with border fraction %.2f.", border_frac)

    def _roi_rect(self, detpar: DetectorParameter, nrows: int, ncols: int):
        half = detpar.width * (1 + 2 * self.border_frac) / 2
        left = int(np.clip(round(detpar.x - half), 0, ncols))
        top = int(np.clip(round(detpar.y - half), 0, nrows))
        right = int(np.clip(round(detpar.x + half), 0, ncols))
        bottom = int(np.clip(round(detpar.y + half), 0, nrows))
        return left, top, right, bottom

    def extract(self, img: np.ndarray, detpar: DetectorParameter,
                flip: bool = False) -> Tuple[np.ndarray, DetectorParameter]:
        """Returns the ROI image and detpar expressed in the ROI frame (with rot 0)."""
        left, top, right, bottom = self._roi_rect(detpar, img.shape[0], img.shape[1])
        if right <= left or bottom <= top:
            raise ValueError(f"Face ROI is empty for detector position ({detpar.x:.1f}, {detpar.y:.1f})")
        face_roi = img[top:bottom, left:right].copy()

        detpar_roi = replace(
            detpar,
            x=detpar.x - left, y=detpar.y - top,
            lex=_shift(detpar.lex, left), ley=_shift(detpar.ley, top),
            rex=_shift(detpar.rex, left), rey=_shift(detpar.rey, top),
            mouthx=_shift(detpar.mouthx, left), mouthy=_shift(detpar.mouthy, top))

        if detpar.rot:
            mat = rotation_matrix((detpar_roi.x, detpar_roi.y), -detpar.rot)
            face_roi = cv2.warpAffine(face_roi, mat, (face_roi.shape[1], face_roi.shape[0]),
                                      borderMode=cv2.BORDER_REPLICATE)
            detpar_roi = _transform_eyes_mouth(detpar_roi, mat)
        detpar_roi = replace(detpar_roi, rot=0.0)

        if flip:
            face_roi = cv2.flip(face_roi, 1)
            detpar_roi = replace(detpar_roi, x=face_roi.shape[1] - detpar_roi.x)

        logger.debug("Face ROI %dx%d at (%d, %d)", face_roi.shape[1], face_roi.shape[0], left, top)
        return face_roi, detpar_roi


def _transform_eyes_mouth(detpar: DetectorParameter, mat: np.ndarray) -> DetectorParameter:
    fields = {}
    for xname, yname in (("lex", "ley"), ("rex", "rey"), ("mouthx", "mouthy")):
        x, y = getattr(detpar, xname), getattr(detpar, yname)
        if x is not None and y is not None:
            fields[xname], fields[yname] = (float(v) for v in mat[:, :2] @ (x, y) + mat[:, 2])
    return replace(detpar, **fields)


def img_shape_to_roi_frame(shape: np.ndarray, detpar_roi: DetectorParameter,
                           detpar: DetectorParameter) -> np.ndarray:
    """Maps a shape from image coordinates to the (upright) ROI coordinates."""
    out = shape.copy()
    used = used_mask(shape)
    out[used, 0] += detpar_roi.x - detpar.x
    out[used, 1] += detpar_roi.y - detpar.y
    if detpar.rot:
        out = transform_shape(out, rotation_matrix((detpar_roi.x, detpar_roi.y), -detpar.rot))
    return out
