import logging
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from .geometry import alignment_transform
from .shapes import as_shape, jitter_points_at_00, used_mask

logger = logging.getLogger(__name__)

# Yaw (degrees) beyond which the next more-turned model is used, for a bank
# of three models (frontal, yaw22, yaw45).
DEFAULT_YAW_EDGES = (14.0, 35.0)


class ShapeModel:
    """Point distribution model for one right-facing yaw range."""
    def __init__(self, meanshape: np.ndarray, eigvecs: np.ndarray, eigvals: np.ndarray,
                 bmax: float = 1.8, max_iters: int = 20, converged_dist: float = 0.5):
        self._meanshape = as_shape(meanshape)
        npoints = len(self._meanshape)
        self.eigvals = np.asarray(eigvals, dtype=np.float64).ravel()
        self.eigvecs = np.asarray(eigvecs, dtype=np.float64).reshape(2 * npoints, len(self.eigvals))
        self.bmax = bmax
        self.max_iters = max_iters
        self.converged_dist = converged_dist

    @property
    def npoints(self) -> int:
        return len(self._meanshape)

    @property
    def meanshape(self) -> np.ndarray:
        return self._meanshape.copy()

    @classmethod
    def load(cls, path: str, **kwargs) -> "ShapeModel":
        try:
            with np.load(path) as data:
                model = cls(data["meanshape"], data["eigvecs"], data["eigvals"], **kwargs)
            logger.info(f"Shape model loaded from '{path}' ({model.npoints} points, {len(model.eigvals)} modes).")
            return model
        except Exception as e:
            logger.critical(f"Failed to load shape model from '{path}': {e}")
            raise RuntimeError(f"Critical error: Shape model '{path}' could not be loaded.") from e

    def save(self, path: str):
        np.savez(path, meanshape=self._meanshape, eigvecs=self.eigvecs, eigvals=self.eigvals)

    @classmethod
    def from_training_shapes(cls, shapes: Sequence[np.ndarray], nmodes: int, niters: int = 5, **kwargs) -> "ShapeModel":
        """Builds a model by generalized Procrustes alignment followed by PCA."""
        shapes = [as_shape(s) for s in shapes]
        if not shapes:
            raise ValueError("Need at least one training shape")
        ref = shapes[0] - shapes[0].mean(axis=0)
        for _ in range(niters):
            aligned = np.array([alignment_transform(s, ref)(s) for s in shapes])
            mean = aligned.mean(axis=0)
            # keep the reference frame (scale, orientation) of the first shape
            ref = alignment_transform(mean, ref)(mean)

        deviations = (aligned - ref).reshape(len(shapes), -1)
        _, s, vt = np.linalg.svd(deviations, full_matrices=False)
        nmodes = min(nmodes, len(s))
        eigvals = s[:nmodes] ** 2 / max(len(shapes) - 1, 1)
        return cls(ref, vt[:nmodes].T, eigvals, **kwargs)

    def conform_shape_to_constraints(self, shape: np.ndarray, pinned: np.ndarray) -> np.ndarray:
        """Deforms shape to the nearest plausible model shape that passes through the pinned points."""
        shape = as_shape(shape)
        if len(shape) != self.npoints or len(pinned) != self.npoints:
            raise ValueError(f"Model has {self.npoints} points, got shape {len(shape)} and pinned {len(pinned)}")
        pinned_used = used_mask(pinned)
        limits = self.bmax * np.sqrt(np.maximum(self.eigvals, 0))

        for _ in range(self.max_iters):
            tform = alignment_transform(self._meanshape, shape)
            x = tform.inverse(shape)
            b = self.eigvecs.T @ (x - self._meanshape).ravel()
            b = np.clip(b, -limits, limits)
            x = self._meanshape + (self.eigvecs @ b).reshape(-1, 2)
            conformed = tform(x)

            if not pinned_used.any():
                shape = conformed
                break
            dist = np.max(np.linalg.norm(conformed[pinned_used] - pinned[pinned_used], axis=1))
            conformed[pinned_used] = pinned[pinned_used]
            shape = conformed
            if dist < self.converged_dist:
                break

        return jitter_points_at_00(shape)


@dataclass(frozen=True)
class ModelSelection:
    eyaw: int    # signed yaw bucket, negative is left facing
    index: int   # which right-facing model to use
    mirror: bool


def degrees_as_eyaw(yaw: float, edges: Sequence[float]) -> int:
    """Discretizes yaw into a signed bucket, symmetric about frontal.

    A yaw exactly on an edge stays in the inner bucket.
    """
    bucket = sum(1 for edge in edges if abs(yaw) > edge)
    return -bucket if yaw < 0 else bucket


def eyaw_as_string(eyaw: int) -> str:
    if eyaw == 0:
        return "frontal"
    return f"{'left' if eyaw < 0 else 'right'}{abs(eyaw)}"


class ModelBank:
    """Right-facing shape models indexed by yaw bucket; left-facing faces reuse them mirrored."""
    def __init__(self, models: Sequence[ShapeModel], yaw_edges: Sequence[float] = None):
        if not models:
            raise ValueError("Model bank needs at least one model")
        if yaw_edges is None:
            yaw_edges = () if len(models) == 1 else DEFAULT_YAW_EDGES
        yaw_edges = tuple(float(e) for e in yaw_edges)
        if len(yaw_edges) != len(models) - 1:
            raise ValueError(f"{len(models)} models need {len(models) - 1} yaw edges, got {len(yaw_edges)}")
        if any(e <= 0 for e in yaw_edges) or any(b <= a for a, b in zip(yaw_edges, yaw_edges[1:])):
            raise ValueError(f"Yaw edges must be positive and increasing, got {yaw_edges}")
        if len({m.npoints for m in models}) != 1:
            raise ValueError("All models in a bank must have the same number of points")
        self.models = list(models)
        self.yaw_edges = yaw_edges
        logger.info("Model bank initialized with %d models, yaw edges %s.", len(self.models), yaw_edges)

    def __len__(self):
        return len(self.models)

    def __getitem__(self, index: int) -> ShapeModel:
        return self.models[index]

    @property
    def npoints(self) -> int:
        return self.models[0].npoints

    def select(self, yaw: float) -> ModelSelection:
        eyaw = degrees_as_eyaw(yaw, self.yaw_edges)
        return ModelSelection(eyaw=eyaw, index=abs(eyaw), mirror=eyaw < 0)
