import numpy as np

# A point at exactly (0, 0) means "not supplied".
UNUSED = (0.0, 0.0)
XJITTER = 0.1


def as_shape(points) -> np.ndarray:
    """Returns a float64 (N, 2) copy of the given points."""
    shape = np.array(points, dtype=np.float64)
    if shape.ndim != 2 or shape.shape[1] != 2:
        raise ValueError(f"Expected an (N, 2) array of points, got shape {shape.shape}")
    return shape


def used_mask(shape: np.ndarray) -> np.ndarray:
    return (shape[:, 0] != 0) | (shape[:, 1] != 0)


def point_used(shape: np.ndarray, i: int) -> bool:
    return bool(shape[i, 0] != 0 or shape[i, 1] != 0)


def count_used(shape: np.ndarray) -> int:
    return int(np.count_nonzero(used_mask(shape)))


def unused_shape(npoints: int) -> np.ndarray:
    return np.zeros((npoints, 2), dtype=np.float64)


def jitter_points_at_00(shape: np.ndarray) -> np.ndarray:
    """Nudges points that landed exactly on (0, 0) so they don't read as unused."""
    out = shape.copy()
    out[~used_mask(out)] = XJITTER
    return out
