"""Rigid transform and quaternion helpers.

Transforms are ``(3, 4)`` float64 arrays ``[R | t]`` acting on column
vectors: ``p' = R @ p + t``. ``compose(a, b)`` applies ``b`` first, so a
child's absolute transform is ``compose(parent_absolute, child_relative)``.

Quaternions are ``(w, x, y, z)`` arrays, identity ``(1, 0, 0, 0)``.
"""

from typing import Optional, Tuple
import numpy as np


# Entries of a rotation block smaller than this are treated as noise
CLEANUP_EPSILON = 0.00001

IDENTITY_QUATERNION = np.array([1.0, 0.0, 0.0, 0.0])


def identity_transform() -> np.ndarray:
    """Return a fresh identity transform."""
    return np.hstack([np.eye(3), np.zeros((3, 1))])


def make_transform(
    rotation: Optional[np.ndarray] = None,
    translation: Optional[np.ndarray] = None
) -> np.ndarray:
    """Build a transform from a 3x3 block and a translation."""
    tm = identity_transform()
    if rotation is not None:
        tm[:, :3] = np.asarray(rotation, dtype=np.float64)
    if translation is not None:
        tm[:, 3] = np.asarray(translation, dtype=np.float64)
    return tm


def compose(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Return the transform that applies ``b`` and then ``a``."""
    out = np.empty((3, 4))
    out[:, :3] = a[:, :3] @ b[:, :3]
    out[:, 3] = a[:, :3] @ b[:, 3] + a[:, 3]
    return out


def inverse_transform(m: np.ndarray) -> np.ndarray:
    """Inverse of an affine transform (the 3x3 block may carry scale)."""
    r_inv = np.linalg.inv(m[:, :3])
    out = np.empty((3, 4))
    out[:, :3] = r_inv
    out[:, 3] = -r_inv @ m[:, 3]
    return out


def cleanup_orthogonal_matrix(m: np.ndarray, epsilon: float = CLEANUP_EPSILON) -> np.ndarray:
    """Zero near-zero entries of the rotation block and re-normalize its axes.

    The translation column is left untouched.
    """
    out = np.array(m, dtype=np.float64)
    block = out[:, :3]
    block[np.abs(block) < epsilon] = 0.0

    lengths = np.linalg.norm(block, axis=0)
    lengths[lengths == 0.0] = 1.0
    out[:, :3] = block / lengths
    return out


def polar_decompose(block: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Split a 3x3 block into ``rotation @ stretch``.

    Returns the proper rotation and the per-axis scale (diagonal of the
    symmetric stretch). Reflections are folded into a negative scale.
    """
    u, _, vt = np.linalg.svd(block)
    rotation = u @ vt
    if np.linalg.det(rotation) < 0.0:
        u[:, -1] = -u[:, -1]
        rotation = u @ vt
    stretch = rotation.T @ block
    return rotation, np.diag(stretch).copy()


def decompose_transform(m: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Break a transform into translation, unit quaternion and scale."""
    rotation, scale = polar_decompose(m[:, :3])
    return m[:, 3].copy(), quaternion_from_matrix(rotation), scale


def quaternion_from_matrix(R: np.ndarray) -> np.ndarray:
    """Convert a 3x3 rotation matrix to a unit quaternion."""
    trace = R[0, 0] + R[1, 1] + R[2, 2]

    if trace > 0:
        s = 0.5 / np.sqrt(trace + 1.0)
        w = 0.25 / s
        x = (R[2, 1] - R[1, 2]) * s
        y = (R[0, 2] - R[2, 0]) * s
        z = (R[1, 0] - R[0, 1]) * s
    elif R[0, 0] > R[1, 1] and R[0, 0] > R[2, 2]:
        s = 2.0 * np.sqrt(1.0 + R[0, 0] - R[1, 1] - R[2, 2])
        w = (R[2, 1] - R[1, 2]) / s
        x = 0.25 * s
        y = (R[0, 1] + R[1, 0]) / s
        z = (R[0, 2] + R[2, 0]) / s
    elif R[1, 1] > R[2, 2]:
        s = 2.0 * np.sqrt(1.0 + R[1, 1] - R[0, 0] - R[2, 2])
        w = (R[0, 2] - R[2, 0]) / s
        x = (R[0, 1] + R[1, 0]) / s
        y = 0.25 * s
        z = (R[1, 2] + R[2, 1]) / s
    else:
        s = 2.0 * np.sqrt(1.0 + R[2, 2] - R[0, 0] - R[1, 1])
        w = (R[1, 0] - R[0, 1]) / s
        x = (R[0, 2] + R[2, 0]) / s
        y = (R[1, 2] + R[2, 1]) / s
        z = 0.25 * s

    q = np.array([w, x, y, z], dtype=np.float64)
    return q / np.linalg.norm(q)


def quaternion_to_matrix(q: np.ndarray) -> np.ndarray:
    """Convert a quaternion to a 3x3 rotation matrix."""
    w, x, y, z = normalize_quaternion(q)
    return np.array([
        [1 - 2*(y*y + z*z), 2*(x*y - w*z),     2*(x*z + w*y)],
        [2*(x*y + w*z),     1 - 2*(x*x + z*z), 2*(y*z - w*x)],
        [2*(x*z - w*y),     2*(y*z + w*x),     1 - 2*(x*x + y*y)],
    ])


def normalize_quaternion(q: np.ndarray) -> np.ndarray:
    q = np.asarray(q, dtype=np.float64)
    length = np.linalg.norm(q)
    if length < 1e-12:
        return IDENTITY_QUATERNION.copy()
    return q / length


def quaternion_from_axis_angle(axis: np.ndarray, angle: float) -> np.ndarray:
    """Create quaternion from axis and angle (radians)."""
    axis = np.asarray(axis, dtype=np.float64)
    length = np.linalg.norm(axis)
    if length < 1e-12:
        return IDENTITY_QUATERNION.copy()
    axis = axis / length
    half_angle = angle / 2
    s = np.sin(half_angle)
    return np.array([np.cos(half_angle), axis[0] * s, axis[1] * s, axis[2] * s])


def quaternion_slerp(q0: np.ndarray, q1: np.ndarray, t: float) -> np.ndarray:
    """Spherical interpolation along the shorter arc."""
    q0 = normalize_quaternion(q0)
    q1 = normalize_quaternion(q1)
    dot = float(np.dot(q0, q1))
    if dot < 0.0:
        q1 = -q1
        dot = -dot

    if dot > 0.9995:
        return normalize_quaternion(q0 + t * (q1 - q0))

    theta = np.arccos(dot)
    sin_theta = np.sin(theta)
    a = np.sin((1.0 - t) * theta) / sin_theta
    b = np.sin(t * theta) / sin_theta
    return a * q0 + b * q1
