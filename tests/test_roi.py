from dataclasses import replace

import numpy as np
import pytest

from face_start_shape.detpar import DetectorParameter
from face_start_shape.errors import InvalidRotationRange
from face_start_shape.geometry import rotation_matrix, rot_shape
from face_start_shape.roi import FaceRoiExtractor, img_shape_to_roi_frame
from face_start_shape.shapes import used_mask


def test_upright_roi_is_a_translated_crop():
    img = np.arange(300 * 400, dtype=np.uint32).reshape(300, 400).astype(np.float32)
    detpar = DetectorParameter(x=200.0, y=150.0, width=40.0, height=40.0, lex=190.0, ley=140.0)

    face_roi, detpar_roi = FaceRoiExtractor(border_frac=0.5).extract(img, detpar)

    assert face_roi.shape == (80, 80)
    np.testing.assert_array_equal(face_roi, img[110:190, 160:240])
    assert (detpar_roi.x, detpar_roi.y) == (40.0, 40.0)
    assert (detpar_roi.lex, detpar_roi.ley) == (30.0, 30.0)
    assert detpar_roi.rex is None


def test_roi_is_clipped_to_the_image():
    img = np.zeros((100, 100), dtype=np.uint8)
    detpar = DetectorParameter(x=10.0, y=90.0, width=40.0, height=40.0)
    face_roi, detpar_roi = FaceRoiExtractor(border_frac=1.0).extract(img, detpar)
    assert face_roi.shape == (70, 70)
    assert (detpar_roi.x, detpar_roi.y) == (10.0, 60.0)


def test_roi_outside_image_is_rejected():
    img = np.zeros((100, 100), dtype=np.uint8)
    detpar = DetectorParameter(x=500.0, y=500.0, width=20.0, height=20.0)
    with pytest.raises(ValueError):
        FaceRoiExtractor().extract(img, detpar)


def test_rotated_face_comes_out_upright():
    img = np.zeros((300, 400), dtype=np.uint8)
    eyes = rot_shape(np.array([[170.0, 130.0], [230.0, 130.0]]), 25.0, 200.0, 150.0)
    detpar = DetectorParameter(x=200.0, y=150.0, width=80.0, height=80.0, rot=25.0,
                               lex=eyes[0, 0], ley=eyes[0, 1], rex=eyes[1, 0], rey=eyes[1, 1])

    face_roi, detpar_roi = FaceRoiExtractor().extract(img, detpar)

    assert detpar_roi.rot == 0.0
    assert detpar_roi.ley == pytest.approx(detpar_roi.rey)
    assert detpar_roi.rex - detpar_roi.lex == pytest.approx(60.0)
    assert detpar.rot == 25.0


def test_flip_mirrors_roi_x():
    img = np.zeros((300, 400), dtype=np.uint8)
    detpar = DetectorParameter(x=200.0, y=150.0, width=40.0, height=40.0)
    face_roi, plain = FaceRoiExtractor().extract(img, detpar)
    _, flipped = FaceRoiExtractor().extract(img, detpar, flip=True)
    assert flipped.x == pytest.approx(face_roi.shape[1] - plain.x)


def test_shape_to_roi_frame_translates_and_derotates():
    detpar = DetectorParameter(x=200.0, y=150.0, width=80.0, height=80.0, rot=30.0)
    detpar_roi = DetectorParameter(x=120.0, y=120.0, width=80.0, height=80.0)
    upright = np.array([[170.0, 130.0], [230.0, 130.0], [0.0, 0.0]])
    shape = rot_shape(upright, 30.0, 200.0, 150.0)

    roi_shape = img_shape_to_roi_frame(shape, detpar_roi, detpar)

    np.testing.assert_allclose(roi_shape[:2], upright[:2] - (80.0, 30.0), atol=1e-9)
    assert not used_mask(roi_shape)[2]


def test_rotation_range_is_checked():
    with pytest.raises(InvalidRotationRange):
        rotation_matrix((0.0, 0.0), 361.0)
    rotation_matrix((0.0, 0.0), -360.0)


def test_extract_returns_a_new_detpar():
    img = np.zeros((300, 400), dtype=np.uint8)
    detpar = DetectorParameter(x=200.0, y=150.0, width=60.0, height=60.0, rot=-30.0, yaw=20.0, eyaw=1,
                               lex=180.0, ley=140.0, rex=220.0, rey=140.0, mouthx=200.0, mouthy=175.0)
    before = replace(detpar)

    _, detpar_roi = FaceRoiExtractor().extract(img, detpar, flip=True)

    assert detpar == before
    assert detpar_roi is not detpar
    assert (detpar_roi.rot, detpar_roi.yaw, detpar_roi.eyaw) == (0.0, 20.0, 1)
