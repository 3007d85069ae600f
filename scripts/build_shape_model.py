"""Build a shape model .npz from an (nshapes, npoints, 2) array of training shapes."""

import argparse
import logging
import sys
from pathlib import Path

import numpy as np

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from face_start_shape.shape_model import ShapeModel  # noqa: E402

logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("shapes", type=Path, help=".npy file of training shapes for one yaw range")
    parser.add_argument("out", type=Path, help="output .npz model file")
    parser.add_argument("--nmodes", type=int, default=20, help="number of shape modes to keep")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    args = parse_args(argv)
    shapes = np.load(args.shapes)
    if shapes.ndim != 3 or shapes.shape[2] != 2:
        raise ValueError(f"Expected (nshapes, npoints, 2) training shapes, got {shapes.shape}")
    model = ShapeModel.from_training_shapes(list(shapes), nmodes=args.nmodes)
    model.save(args.out)
    logger.info("Saved %d-point model with %d modes to %s", model.npoints, len(model.eigvals), args.out)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
