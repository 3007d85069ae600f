import logging
import cv2
import numpy as np
from skimage import transform as trans

from .errors import InsufficientConstraints, InvalidRotationRange
from .shapes import used_mask

logger = logging.getLogger(__name__)


def alignment_transform(src: np.ndarray, dst: np.ndarray) -> trans.SimilarityTransform:
    """Least-squares similarity transform (rotation, scale, translation) mapping src onto dst."""
    if len(src) != len(dst):
        raise ValueError(f"Cannot align {len(src)} points to {len(dst)} points")
    tform = trans.SimilarityTransform.from_estimate(src, dst)
    if not tform or not np.all(np.isfinite(tform.params)):
        raise InsufficientConstraints("Pinned landmarks are degenerate, cannot align to them")
    return tform


def apply_transform(shape: np.ndarray, tform: trans.SimilarityTransform) -> np.ndarray:
    return tform(shape)


def rotation_matrix(center, angle: float) -> np.ndarray:
    """2x3 matrix rotating by angle degrees (positive is anticlockwise) about center."""
    if not -360 <= angle <= 360:
        raise InvalidRotationRange(f"Rotation {angle} is outside [-360, 360]")
    return cv2.getRotationMatrix2D((float(center[0]), float(center[1])), float(angle), 1.0)


def transform_shape(shape: np.ndarray, mat: np.ndarray) -> np.ndarray:
    """Applies a 2x3 affine matrix to the used points of a shape."""
    out = shape.copy()
    used = used_mask(shape)
    out[used] = shape[used] @ mat[:, :2].T + mat[:, 2]
    return out


def rot_shape(shape: np.ndarray, rot: float, x: float, y: float) -> np.ndarray:
    """Rotates a shape by rot degrees (positive is anticlockwise) about (x, y)."""
    return transform_shape(shape, rotation_matrix((x, y), rot))


def flip_image(img: np.ndarray) -> np.ndarray:
    return cv2.flip(img, 1)
