import logging
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from .geometry import rot_shape

logger = logging.getLogger(__name__)

ROT_TREAT_AS_ZERO = 5.0  # degrees


@dataclass(frozen=True)
class Hinge:
    """max(0, x[index] - knot) if direction is +1, max(0, knot - x[index]) if -1."""
    index: int
    knot: float
    direction: int = 1

    def __call__(self, x) -> float:
        return max(0.0, self.direction * (x[self.index] - self.knot))


@dataclass(frozen=True)
class Term:
    coef: float
    hinges: Tuple[Hinge, ...]


@dataclass(frozen=True)
class HingeModel:
    intercept: float
    terms: Tuple[Term, ...]

    def __call__(self, x) -> float:
        total = self.intercept
        for term in self.terms:
            value = term.coef
            for hinge in term.hinges:
                value *= hinge(x)
            total += value
        return total


# Additive hinge (MARS style) yaw regression, fitted on training shapes and their
# reflections. Input is the flattened, centred, unit-norm 5-point shape:
# x[0..1] LEyeOuter, x[2..3] REyeOuter, x[4..5] CNoseTip,
# x[6..7] LMouthCorner, x[8..9] RMouthCorner.
YAW_MODEL = HingeModel(
    intercept=34.342,
    terms=(
        Term(-7.0267, (Hinge(3, -0.34708, +1),)),
        Term(10.739, (Hinge(3, -0.34708, -1),)),
        Term(116.29, (Hinge(4, 0.21454, +1),)),
        Term(-159.56, (Hinge(4, 0.21454, -1),)),
        Term(12.513, (Hinge(7, 0.3384, +1),)),
        Term(7.2764, (Hinge(7, 0.3384, -1),)),
        Term(260.14, (Hinge(3, -0.34708, +1), Hinge(5, -0.010838, +1))),
        Term(-160.64, (Hinge(3, -0.34708, +1), Hinge(5, -0.010838, -1))),
        Term(-284.88, (Hinge(3, -0.34708, -1), Hinge(5, -0.055581, +1))),
        Term(654.54, (Hinge(3, -0.34708, -1), Hinge(5, -0.055581, -1))),
    ),
)


def possibly_set_rot_to_zero(rot: float, rot_treat_as_zero: float = ROT_TREAT_AS_ZERO) -> float:
    if -rot_treat_as_zero <= rot <= rot_treat_as_zero:
        return 0.0
    return rot


class PoseEstimator:
    """Estimates in-plane rotation and yaw (degrees) from a 5-point shape."""
    def __init__(self, rot_treat_as_zero: float = ROT_TREAT_AS_ZERO, yaw_model: HingeModel = YAW_MODEL):
        self.rot_treat_as_zero = rot_treat_as_zero
        self.yaw_model = yaw_model
        logger.info("Pose estimator initialized, rotations within %.1f degrees treated as zero.",
                    rot_treat_as_zero)

    def estimate(self, shape5: np.ndarray) -> Tuple[float, float]:
        """Returns (rot, yaw). Points must be LEyeOuter, REyeOuter, CNoseTip, LMouthCorner, RMouthCorner."""
        if np.shape(shape5) != (5, 2):
            raise ValueError(f"Pose estimation needs a (5, 2) shape, got {np.shape(shape5)}")
        workshape = np.array(shape5, dtype=np.float64)

        # Eye angle is the in-plane rotation, positive is anticlockwise.
        rot = float(np.degrees(-np.arctan2(workshape[1, 1] - workshape[0, 1],
                                           workshape[1, 0] - workshape[0, 0])))
        rot = possibly_set_rot_to_zero(rot, self.rot_treat_as_zero)

        if rot:
            centroid = workshape.mean(axis=0)
            workshape = rot_shape(workshape, -rot, centroid[0], centroid[1])

        workshape -= workshape.mean(axis=0)
        workshape /= np.sqrt(np.sum(workshape ** 2))

        # TODO Retrain YAW_MODEL on derotated shapes, it was fitted without derotation.
        yaw = float(self.yaw_model(workshape.ravel()))
        logger.debug("Estimated rot %.1f yaw %.1f from 5-point shape", rot, yaw)
        return rot, yaw
