import sys
from pathlib import Path

import numpy as np
import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from face_start_shape.aligner import MeanShapeAligner  # noqa: E402
from face_start_shape.landmarks import L17, POSE5  # noqa: E402
from face_start_shape.pipeline import PinnedStartPipeline  # noqa: E402
from face_start_shape.shape_model import ModelBank, ShapeModel  # noqa: E402

# Upright frontal face in the canonical 17-point scheme, y increases downward.
FRONTAL17 = np.array([
    [-30.0, -20.0],   # L_PUPIL
    [30.0, -20.0],    # R_PUPIL
    [-22.0, 40.0],    # L_MOUTH_CORNER
    [22.0, 40.0],     # R_MOUTH_CORNER
    [-50.0, -40.0],   # L_OUTER_EYEBROW
    [-12.0, -38.0],   # L_INNER_EYEBROW
    [12.0, -38.0],    # R_INNER_EYEBROW
    [50.0, -40.0],    # R_OUTER_EYEBROW
    [-45.0, -20.0],   # L_EYE_OUTER
    [-15.0, -20.0],   # L_EYE_INNER
    [15.0, -20.0],    # R_EYE_INNER
    [45.0, -20.0],    # R_EYE_OUTER
    [0.0, 15.0],      # C_NOSE_TIP
    [-10.0, 20.0],    # L_NOSTRIL
    [10.0, 20.0],     # R_NOSTRIL
    [0.0, 35.0],      # C_TOP_OF_TOP_LIP
    [0.0, 50.0],      # C_BOT_OF_BOT_LIP
])

IMG_WIDTH = 400
IMG_HEIGHT = 300
FACE_CENTER = (200.0, 150.0)


def face17(nose_shift=0.0, center=FACE_CENTER):
    """FRONTAL17 placed in the image, with the nose moved sideways to fake yaw."""
    shape = FRONTAL17.copy()
    shape[[L17.C_NOSE_TIP, L17.L_NOSTRIL, L17.R_NOSTRIL], 0] += nose_shift
    return shape + center


def pinned_pose_points(shape17):
    """Only the five pose landmarks of shape17 pinned, the rest unused."""
    pinned = np.zeros_like(shape17)
    pinned[list(POSE5)] = shape17[list(POSE5)]
    return pinned


def make_model(nose_shift=0.0, nmodes=4, seed=0):
    rng = np.random.RandomState(seed)
    base = face17(nose_shift, center=(0.0, 0.0))
    shapes = [base + rng.normal(0, 1.5, base.shape) for _ in range(40)]
    return ShapeModel.from_training_shapes(shapes, nmodes=nmodes)


@pytest.fixture
def model_bank():
    return ModelBank([make_model(0.0, seed=0), make_model(15.0, seed=1), make_model(30.0, seed=2)],
                     yaw_edges=(14.0, 35.0))


@pytest.fixture
def rigid_bank():
    """Single exactly-symmetric model with no shape modes."""
    return ModelBank([ShapeModel(FRONTAL17, np.zeros((34, 0)), np.zeros(0))])


@pytest.fixture
def pipeline(model_bank):
    return PinnedStartPipeline(model_bank, aligner=MeanShapeAligner())


@pytest.fixture
def blank_image():
    return np.full((IMG_HEIGHT, IMG_WIDTH), 128, dtype=np.uint8)
