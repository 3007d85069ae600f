import logging
import numpy as np

from .aligner import MeanShapeAligner
from .landmarks import POSE5, have_pose_points, to_canonical17
from .shapes import UNUSED, used_mask

logger = logging.getLogger(__name__)


def pose_shape5(pinned: np.ndarray, meanshape: np.ndarray, aligner: MeanShapeAligner = None) -> np.ndarray:
    """Reduces pinned landmarks to the five pose points, imputing any that are missing.

    With the five canonical points pinned they are copied straight across.
    Otherwise the canonical mean shape is aligned to whatever canonical points
    are pinned and the five are read off that. The yaw model was trained on
    exact points, so imputed points give a rougher pose estimate.
    """
    pinned17 = to_canonical17(pinned)
    if not have_pose_points(pinned17):
        aligner = aligner or MeanShapeAligner()
        meanshape17 = to_canonical17(meanshape)
        # only slots the mean shape can supply are usable as correspondences
        pinned17[~used_mask(meanshape17)] = UNUSED
        logger.debug("Pose points not all pinned, imputing them from the mean shape")
        pinned17 = aligner.align(pinned17, meanshape17)
    return pinned17[list(POSE5)].copy()
