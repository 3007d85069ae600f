from enum import IntEnum

import numpy as np

from .shapes import unused_shape, used_mask


class L17(IntEnum):
    """Canonical 17-point scheme. Left and right are wrt the image, not the subject."""
    L_PUPIL = 0
    R_PUPIL = 1
    L_MOUTH_CORNER = 2
    R_MOUTH_CORNER = 3
    L_OUTER_EYEBROW = 4
    L_INNER_EYEBROW = 5
    R_INNER_EYEBROW = 6
    R_OUTER_EYEBROW = 7
    L_EYE_OUTER = 8
    L_EYE_INNER = 9
    R_EYE_INNER = 10
    R_EYE_OUTER = 11
    C_NOSE_TIP = 12
    L_NOSTRIL = 13
    R_NOSTRIL = 14
    C_TOP_OF_TOP_LIP = 15
    C_BOT_OF_BOT_LIP = 16


# The pose regression was trained on exactly these points, in this order.
POSE5 = (
    L17.L_EYE_OUTER,
    L17.R_EYE_OUTER,
    L17.C_NOSE_TIP,
    L17.L_MOUTH_CORNER,
    L17.R_MOUTH_CORNER,
)

# Per scheme: canonical slot -> source index, or tuple of source indices to
# average. Slots missing from a table are absent in that scheme.
_SCHEME5 = {slot: i for i, slot in enumerate(POSE5)}

_SCHEME17 = {slot: int(slot) for slot in L17}

_SCHEME68 = {  # iBUG 300-W
    L17.L_PUPIL: tuple(range(36, 42)),
    L17.R_PUPIL: tuple(range(42, 48)),
    L17.L_MOUTH_CORNER: 48,
    L17.R_MOUTH_CORNER: 54,
    L17.L_OUTER_EYEBROW: 17,
    L17.L_INNER_EYEBROW: 21,
    L17.R_INNER_EYEBROW: 22,
    L17.R_OUTER_EYEBROW: 26,
    L17.L_EYE_OUTER: 36,
    L17.L_EYE_INNER: 39,
    L17.R_EYE_INNER: 42,
    L17.R_EYE_OUTER: 45,
    L17.C_NOSE_TIP: 30,
    L17.L_NOSTRIL: 31,
    L17.R_NOSTRIL: 35,
    L17.C_TOP_OF_TOP_LIP: 51,
    L17.C_BOT_OF_BOT_LIP: 57,
}

CANONICAL_TABLES = {5: _SCHEME5, 17: _SCHEME17, 68: _SCHEME68}


def _partners(npoints, pairs):
    partners = list(range(npoints))
    for a, b in pairs:
        partners[a], partners[b] = b, a
    return tuple(partners)


_PAIRS68 = (
    [(i, 16 - i) for i in range(8)]                          # jaw
    + [(17, 26), (18, 25), (19, 24), (20, 23), (21, 22)]     # brows
    + [(31, 35), (32, 34)]                                   # nostrils
    + [(36, 45), (37, 44), (38, 43), (39, 42), (40, 47), (41, 46)]
    + [(48, 54), (49, 53), (50, 52), (55, 59), (56, 58)]     # outer lips
    + [(60, 64), (61, 63), (65, 67)]                         # inner lips
)

PARTNER_TABLES = {
    5: _partners(5, [(0, 1), (3, 4)]),
    17: _partners(17, [
        (L17.L_PUPIL, L17.R_PUPIL),
        (L17.L_MOUTH_CORNER, L17.R_MOUTH_CORNER),
        (L17.L_OUTER_EYEBROW, L17.R_OUTER_EYEBROW),
        (L17.L_INNER_EYEBROW, L17.R_INNER_EYEBROW),
        (L17.L_EYE_OUTER, L17.R_EYE_OUTER),
        (L17.L_EYE_INNER, L17.R_EYE_INNER),
        (L17.L_NOSTRIL, L17.R_NOSTRIL),
    ]),
    68: _partners(68, _PAIRS68),
}


def _lookup(tables, npoints, what):
    try:
        return tables[npoints]
    except KeyError:
        raise ValueError(
            f"No {what} for {npoints}-point shapes "
            f"(supported: {sorted(tables)})") from None


def to_canonical17(shape: np.ndarray) -> np.ndarray:
    """Maps a shape in any supported scheme to the 17-point canonical scheme.

    Slots the source scheme can't provide are left unused. An averaged slot
    is used only if all of its contributing points are used.
    """
    table = _lookup(CANONICAL_TABLES, len(shape), "canonical 17-point mapping")
    used = used_mask(shape)
    shape17 = unused_shape(len(L17))
    for slot, source in table.items():
        if isinstance(source, tuple):
            if used[list(source)].all():
                shape17[slot] = shape[list(source)].mean(axis=0)
        elif used[source]:
            shape17[slot] = shape[source]
    return shape17


def have_pose_points(shape17: np.ndarray) -> bool:
    """True if all five pose landmarks are present in a 17-point shape."""
    if len(shape17) != len(L17):
        raise ValueError(f"Expected a 17-point shape, got {len(shape17)} points")
    return bool(used_mask(shape17)[list(POSE5)].all())


def flip_shape(shape: np.ndarray, img_width: int) -> np.ndarray:
    """Mirrors a shape about the vertical centre line of an image.

    Left/right landmarks swap roles, so each output point is taken from its
    partner before its x is reflected.
    """
    partners = list(_lookup(PARTNER_TABLES, len(shape), "left/right partner table"))
    source = shape[partners]
    flipped = unused_shape(len(shape))
    used = used_mask(source)
    flipped[used, 0] = img_width - 1 - source[used, 0]
    flipped[used, 1] = source[used, 1]
    return flipped
