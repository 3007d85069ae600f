import logging
from dataclasses import asdict, dataclass, replace
from typing import Optional

import numpy as np

from .errors import MissingRequiredLandmark
from .landmarks import L17, to_canonical17
from .shapes import point_used

logger = logging.getLogger(__name__)

# Calibrated to match the face detector's boxes, don't change independently.
EYE_WEIGHT = 0.7
MOUTH_WEIGHT = 0.3
EYEMOUTH_TO_FACE_SIZE = 2.0


@dataclass
class DetectorParameter:
    """A face's position, size and pose, in some image frame."""
    x: float
    y: float
    width: float
    height: float
    rot: float = 0.0       # in-plane rotation, degrees, positive is anticlockwise
    yaw: float = 0.0       # degrees, negative is left facing
    eyaw: int = 0          # discretized yaw
    lex: Optional[float] = None   # left pupil
    ley: Optional[float] = None
    rex: Optional[float] = None   # right pupil
    rey: Optional[float] = None
    mouthx: Optional[float] = None  # bottom of bottom lip
    mouthy: Optional[float] = None

    def to_dict(self) -> dict:
        return asdict(self)


def _required_point(shape17, slot):
    if not point_used(shape17, slot):
        raise MissingRequiredLandmark(f"Shape has no {slot.name} point")
    return float(shape17[slot, 0]), float(shape17[slot, 1])


def pseudo_detpar_from_shape(shape: np.ndarray, rot: float, yaw: float, eyaw: int) -> DetectorParameter:
    """Back-computes a detector parameter from a fully conformed shape."""
    shape17 = to_canonical17(shape)
    lex, ley = _required_point(shape17, L17.L_PUPIL)
    rex, rey = _required_point(shape17, L17.R_PUPIL)
    mouthx, mouthy = _required_point(shape17, L17.C_BOT_OF_BOT_LIP)

    xeye = (lex + rex) / 2
    yeye = (ley + rey) / 2
    eyemouth = float(np.hypot(xeye - mouthx, yeye - mouthy))

    return DetectorParameter(
        x=EYE_WEIGHT * xeye + MOUTH_WEIGHT * mouthx,
        y=EYE_WEIGHT * yeye + MOUTH_WEIGHT * mouthy,
        width=EYEMOUTH_TO_FACE_SIZE * eyemouth,
        height=EYEMOUTH_TO_FACE_SIZE * eyemouth,
        rot=rot, yaw=yaw, eyaw=eyaw,
        lex=lex, ley=ley, rex=rex, rey=rey,
        mouthx=mouthx, mouthy=mouthy)


def init_detpar_eye_mouth_from_shape(detpar: DetectorParameter, shape: np.ndarray) -> DetectorParameter:
    """Returns a copy of detpar with the eye and mouth fields taken from whichever of those points the shape has."""
    shape17 = to_canonical17(shape)
    fields = {}
    if point_used(shape17, L17.L_PUPIL):
        fields.update(lex=float(shape17[L17.L_PUPIL, 0]), ley=float(shape17[L17.L_PUPIL, 1]))
    if point_used(shape17, L17.R_PUPIL):
        fields.update(rex=float(shape17[L17.R_PUPIL, 0]), rey=float(shape17[L17.R_PUPIL, 1]))
    if point_used(shape17, L17.C_BOT_OF_BOT_LIP):
        fields.update(mouthx=float(shape17[L17.C_BOT_OF_BOT_LIP, 0]),
                      mouthy=float(shape17[L17.C_BOT_OF_BOT_LIP, 1]))
    return replace(detpar, **fields)


def _flip_x(x, img_width):
    return None if x is None else img_width - 1 - x


def flip_detpar(detpar: DetectorParameter, img_width: int) -> DetectorParameter:
    """Mirrors the geometry of detpar horizontally. Pose fields are left as they are.

    The pupils swap sides, the same way flip_shape swaps partner landmarks.
    """
    return replace(
        detpar,
        x=_flip_x(detpar.x, img_width),
        lex=_flip_x(detpar.rex, img_width), ley=detpar.rey,
        rex=_flip_x(detpar.lex, img_width), rey=detpar.ley,
        mouthx=_flip_x(detpar.mouthx, img_width))
