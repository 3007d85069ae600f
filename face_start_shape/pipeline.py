import logging
from dataclasses import dataclass, replace

import yaml
import numpy as np

from .aligner import MeanShapeAligner
from .canonical import pose_shape5
from .detpar import (DetectorParameter, flip_detpar, init_detpar_eye_mouth_from_shape,
                     pseudo_detpar_from_shape)
from .geometry import flip_image
from .landmarks import flip_shape
from .pose import ROT_TREAT_AS_ZERO, PoseEstimator
from .roi import FaceRoiExtractor, img_shape_to_roi_frame
from .shape_model import ModelBank, ShapeModel, eyaw_as_string
from .shapes import as_shape

logger = logging.getLogger(__name__)


@dataclass
class PinnedStartResult:
    startshape: np.ndarray         # ROI frame
    pinned_roi: np.ndarray         # pinned landmarks in ROI frame
    face_roi: np.ndarray           # ROI around the face, rotated upright
    detpar_roi: DetectorParameter  # wrt face_roi
    detpar: DetectorParameter      # wrt the input image


class PinnedStartPipeline:
    """Builds a start shape and face ROI from manually pinned landmarks."""
    def __init__(self, model_bank: ModelBank, pose_estimator: PoseEstimator = None,
                 aligner: MeanShapeAligner = None, roi_extractor: FaceRoiExtractor = None):
        self.model_bank = model_bank
        self.pose_estimator = pose_estimator or PoseEstimator()
        self.aligner = aligner or MeanShapeAligner()
        self.roi_extractor = roi_extractor or FaceRoiExtractor()

    @classmethod
    def from_config(cls, config_path: str = 'config.yaml') -> "PinnedStartPipeline":
        logger.info("Initializing Pinned Start Shape Pipeline...")
        with open(config_path, 'r') as f:
            cfg = yaml.safe_load(f)

        conform = cfg.get('conform', {})
        models = [
            ShapeModel.load(path,
                            bmax=conform.get('bmax', 1.8),
                            max_iters=conform.get('max_iters', 20),
                            converged_dist=conform.get('converged_dist', 0.5))
            for path in cfg['models']['shape_model_paths']
        ]
        pose = cfg.get('pose', {})
        pipeline = cls(
            ModelBank(models, yaw_edges=pose.get('yaw_bucket_edges')),
            pose_estimator=PoseEstimator(rot_treat_as_zero=pose.get('rot_treat_as_zero', ROT_TREAT_AS_ZERO)),
            roi_extractor=FaceRoiExtractor(border_frac=cfg.get('roi', {}).get('border_frac', 1.0)),
        )
        logger.info("Pinned Start Shape Pipeline initialized successfully.")
        return pipeline

    def pinned_start_shape_and_roi(self, img: np.ndarray, pinned) -> PinnedStartResult:
        """Uses the pinned landmarks to initialize the start shape.

        Works best when the pinned points are the five canonical ones
        (LEyeOuter, REyeOuter, CNoseTip, LMouthCorner, RMouthCorner), since the
        yaw model was trained on those, but any two or more points will do.
        Left-facing faces are processed mirrored because the models are all
        right facing; the returned start shape stays in that mirrored frame
        while both detector parameters describe the unmirrored image.
        """
        pinned = as_shape(pinned)
        if len(pinned) != self.model_bank.npoints:
            raise ValueError(f"Pinned shape has {len(pinned)} points, models have {self.model_bank.npoints}")

        shape5 = pose_shape5(pinned, self.model_bank[0].meanshape, self.aligner)
        rot, yaw = self.pose_estimator.estimate(shape5)
        selection = self.model_bank.select(yaw)
        logger.info("eyaw %s yaw %.0f rot %.0f", eyaw_as_string(selection.eyaw), yaw, rot)

        workimg = np.array(img, copy=True)
        if selection.mirror:
            logger.debug("Left facing, mirroring image and pinned landmarks")
            pinned = flip_shape(pinned, workimg.shape[1])
            workimg = flip_image(workimg)

        model = self.model_bank[selection.index]
        startshape = self.aligner.align(pinned, model.meanshape)
        startshape = model.conform_shape_to_constraints(startshape, pinned)

        detpar = pseudo_detpar_from_shape(startshape, rot, yaw, selection.eyaw)
        if selection.mirror:
            detpar = replace(detpar, rot=-detpar.rot)

        face_roi, detpar_roi = self.roi_extractor.extract(workimg, detpar, flip=False)
        startshape = img_shape_to_roi_frame(startshape, detpar_roi, detpar)
        pinned_roi = img_shape_to_roi_frame(pinned, detpar_roi, detpar)
        # eyes and mouth aren't needed downstream, filled in for consistency
        detpar_roi = init_detpar_eye_mouth_from_shape(detpar_roi, startshape)

        if selection.mirror:
            detpar = flip_detpar(detpar, img.shape[1])
            detpar = replace(detpar, rot=-detpar.rot)
            detpar_roi = replace(detpar_roi, x=detpar_roi.x + 2. * (face_roi.shape[1] / 2. - detpar_roi.x))

        return PinnedStartResult(startshape=startshape, pinned_roi=pinned_roi, face_roi=face_roi,
                                 detpar_roi=detpar_roi, detpar=detpar)
