import json
import logging
import cv2
import numpy as np
from face_start_shape.errors import InsufficientConstraints
from face_start_shape.pipeline import PinnedStartPipeline

logger = logging.getLogger(__name__)

class StartShapeService:
    """Decodes requests, runs the pinned start shape pipeline and packages the result."""
    def __init__(self, config_path: str = 'config.yaml', pipeline: PinnedStartPipeline = None):
        self.pipeline = pipeline or PinnedStartPipeline.from_config(config_path)

    def _decode_image(self, image_bytes: bytes) -> np.ndarray:
        nparr = np.frombuffer(image_bytes, np.uint8)
        image = cv2.imdecode(nparr, cv2.IMREAD_GRAYSCALE)
        if image is None:
            raise ValueError("Could not decode image.")
        return image

    def _parse_landmarks(self, landmarks_json: str) -> np.ndarray:
        """Parses a JSON list with one [x, y] or null per landmark, null meaning not pinned."""
        try:
            points = json.loads(landmarks_json)
        except json.JSONDecodeError as e:
            raise ValueError(f"Landmarks are not valid JSON: {e}") from e
        if not isinstance(points, list):
            raise ValueError("Landmarks must be a JSON list.")
        npoints = self.pipeline.model_bank.npoints
        if len(points) != npoints:
            raise ValueError(f"Expected {npoints} landmarks, got {len(points)}.")
        pinned = np.zeros((npoints, 2), dtype=np.float64)
        for i, point in enumerate(points):
            if point is None:
                continue
            if not isinstance(point, list) or len(point) != 2:
                raise ValueError(f"Landmark {i} must be [x, y] or null.")
            pinned[i] = point
            if not np.all(np.isfinite(pinned[i])):
                raise ValueError(f"Landmark {i} has a non-finite coordinate.")
        return pinned

    def start_shape(self, image_bytes: bytes, landmarks_json: str) -> dict:
        """Full start shape workflow for one image and its pinned landmarks."""
        image = self._decode_image(image_bytes)
        pinned = self._parse_landmarks(landmarks_json)
        try:
            result = self.pipeline.pinned_start_shape_and_roi(image, pinned)
        except InsufficientConstraints as e:
            logger.warning(f"Rejected pinned landmarks: {e}")
            return {"status": "error", "message": str(e)}

        return {
            "status": "success",
            "startshape": result.startshape.tolist(),
            "pinned": result.pinned_roi.tolist(),
            "detpar": result.detpar.to_dict(),
            "detpar_roi": result.detpar_roi.to_dict(),
            "roi_size": [result.face_roi.shape[1], result.face_roi.shape[0]],
        }
