import logging
import numpy as np

from .errors import InsufficientConstraints
from .geometry import alignment_transform, apply_transform
from .shapes import jitter_points_at_00, used_mask

logger = logging.getLogger(__name__)

class MeanShapeAligner:
    """Places a model's mean shape onto whichever landmarks were pinned."""
    def __init__(self, min_pinned: int = 2):
        self.min_pinned = min_pinned
        logger.info("Mean shape aligner initialized, at least %d pinned landmarks required.", min_pinned)

    def align(self, pinned: np.ndarray, meanshape: np.ndarray) -> np.ndarray:
        """Similarity-aligns the mean shape to the pinned points and returns all N aligned points."""
        if len(pinned) != len(meanshape):
            raise ValueError(f"Pinned shape has {len(pinned)} points but mean shape has {len(meanshape)}")

        used = used_mask(pinned)
        nused = int(np.count_nonzero(used))
        if nused < self.min_pinned:
            raise InsufficientConstraints(
                f"Need at least {self.min_pinned} pinned landmarks, got {nused}")

        tform = alignment_transform(meanshape[used], pinned[used])
        return jitter_points_at_00(apply_transform(meanshape, tform))
