"""Euler angle codec for the 24 axis-order conventions.

An order is four independent fields: the inner ``axis``, the ``parity``
of the axis permutation, whether the last axis ``repeat``s the first, and
whether later rotations use the static or the rotating ``frame``. The
ordered axis triple ``(i, j, k)`` is always derived from those fields,
never from a packed bit code.

Matrices follow the column-vector convention of ``core.transforms``.
For example ``XYZr`` (rotate about X, then the new Y, then the new Z)
decomposes ``M = Rx(a0) @ Ry(a1) @ Rz(a2)``.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, Tuple
import numpy as np


class Axis(IntEnum):
    X = 0
    Y = 1
    Z = 2


class Parity(IntEnum):
    EVEN = 0
    ODD = 1


class Repeat(IntEnum):
    NO = 0
    YES = 1


class Frame(IntEnum):
    STATIC = 0
    ROTATING = 1


_SAFE_AXIS = (0, 1, 2, 0)
_NEXT_AXIS = (1, 2, 0, 1)
_AXIS_LETTERS = "XYZ"


@dataclass(frozen=True)
class EulerOrder:
    """One of the 24 Euler conventions."""
    axis: Axis
    parity: Parity
    repeat: Repeat
    frame: Frame

    def axes(self) -> Tuple[int, int, int]:
        """The ordered axis triple ``(i, j, k)`` in static-frame order."""
        i = _SAFE_AXIS[self.axis]
        j = _NEXT_AXIS[i + self.parity]
        k = _NEXT_AXIS[i + 1 - self.parity]
        return i, j, k

    @property
    def name(self) -> str:
        i, j, k = self.axes()
        letters = _AXIS_LETTERS[i] + _AXIS_LETTERS[j] + _AXIS_LETTERS[i if self.repeat else k]
        if self.frame == Frame.ROTATING:
            return letters[::-1] + "r"
        return letters + "s"

    def __str__(self) -> str:
        return self.name


def _all_orders() -> Tuple[EulerOrder, ...]:
    return tuple(
        EulerOrder(axis, parity, repeat, frame)
        for frame in Frame
        for axis in Axis
        for parity in Parity
        for repeat in Repeat
    )


ORDERS: Tuple[EulerOrder, ...] = _all_orders()
ORDERS_BY_NAME: Dict[str, EulerOrder] = {order.name: order for order in ORDERS}

# Rotating-frame X, then Y, then Z: the order bone rotations are stored in
XYZ_ROTATING = ORDERS_BY_NAME["XYZr"]


def order_from_name(name: str) -> EulerOrder:
    """Look up an order by name, e.g. ``"XYZr"`` or ``"ZXZs"``."""
    try:
        return ORDERS_BY_NAME[name]
    except KeyError:
        raise ValueError(f"Unknown Euler order: {name!r}") from None


def wrap_angle(angle):
    """Wrap an angle that is at most 2π above the range into ``(-π, π]``."""
    if angle > np.pi:
        return angle - 2 * np.pi
    return angle


def equivalent_angles(angles) -> np.ndarray:
    """The periodic-equivalent triple ``(π+a0, π-a1, π+a2)`` wrapped to ``(-π, π]``."""
    a0, a1, a2 = angles
    return np.array([
        wrap_angle(np.pi + a0),
        wrap_angle(np.pi - a1),
        wrap_angle(np.pi + a2),
    ])


def decompose(matrix, order: EulerOrder = XYZ_ROTATING) -> Tuple[float, float, float]:
    """Extract Euler angles from the rotation block of a 3x3 or 3x4 matrix.

    Angles come back in the matrix's floating precision. Gimbal lock is
    detected with a fixed ``16 * eps`` guard and resolved by zeroing the
    last angle.
    """
    M = np.asarray(matrix)
    if not np.issubdtype(M.dtype, np.floating):
        M = M.astype(np.float64)
    M = M[:3, :3]
    guard = 16 * np.finfo(M.dtype).eps

    i, j, k = order.axes()

    if order.repeat == Repeat.YES:
        sy = np.sqrt(M[i, j] * M[i, j] + M[i, k] * M[i, k])
        if sy > guard:
            a0 = np.arctan2(M[i, j], M[i, k])
            a1 = np.arctan2(sy, M[i, i])
            a2 = np.arctan2(M[j, i], -M[k, i])
        else:
            a0 = np.arctan2(-M[j, k], M[j, j])
            a1 = np.arctan2(sy, M[i, i])
            a2 = M.dtype.type(0)
    else:
        cy = np.sqrt(M[i, i] * M[i, i] + M[j, i] * M[j, i])
        if cy > guard:
            a0 = np.arctan2(M[k, j], M[k, k])
            a1 = np.arctan2(-M[k, i], cy)
            a2 = np.arctan2(M[j, i], M[i, i])
        else:
            a0 = np.arctan2(-M[j, k], M[j, j])
            a1 = np.arctan2(-M[k, i], cy)
            a2 = M.dtype.type(0)

    if order.parity == Parity.ODD:
        a0, a1, a2 = -a0, -a1, -a2

    if order.frame == Frame.ROTATING:
        a0, a2 = a2, a0

    if order == XYZ_ROTATING:
        # Rig-authoring bias toward small angles, applied to this order only
        alt = equivalent_angles((a0, a1, a2)).astype(M.dtype)
        if float(np.dot(alt, alt)) < float(a0 * a0 + a1 * a1 + a2 * a2):
            a0, a1, a2 = alt[0], alt[1], alt[2]

    return a0, a1, a2


def compose(a0: float, a1: float, a2: float, order: EulerOrder = XYZ_ROTATING) -> np.ndarray:
    """Build a ``(3, 4)`` transform with zero translation from Euler angles."""
    i, j, k = order.axes()

    if order.frame == Frame.ROTATING:
        a0, a2 = a2, a0
    if order.parity == Parity.ODD:
        a0, a1, a2 = -a0, -a1, -a2

    ci, cj, ch = np.cos(a0), np.cos(a1), np.cos(a2)
    si, sj, sh = np.sin(a0), np.sin(a1), np.sin(a2)
    cc, cs = ci * ch, ci * sh
    sc, ss = si * ch, si * sh

    M = np.zeros((3, 4))
    if order.repeat == Repeat.YES:
        M[i, i] = cj
        M[i, j] = sj * si
        M[i, k] = sj * ci
        M[j, i] = sj * sh
        M[j, j] = -cj * ss + cc
        M[j, k] = -cj * cs - sc
        M[k, i] = -sj * ch
        M[k, j] = cj * sc + cs
        M[k, k] = cj * cc - ss
    else:
        M[i, i] = cj * ch
        M[i, j] = sj * sc - cs
        M[i, k] = sj * cc + ss
        M[j, i] = cj * sh
        M[j, j] = sj * ss + cc
        M[j, k] = sj * cs - sc
        M[k, i] = -sj
        M[k, j] = cj * si
        M[k, k] = cj * ci

    return M
