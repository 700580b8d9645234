"""Escape-time sampling of the Mandelbrot recurrence."""

from __future__ import annotations

from typing import NamedTuple

import numpy as np
import tensorflow as tf

ESCAPE_NORM_SQUARED = 4.0
DEVICE = "/CPU:0"


class SampleResult(NamedTuple):
    exit_norm_squared: float
    iteration_count: int


def sample(cx: float, cy: float, max_iteration: int) -> SampleResult:
    """Iterate ``z = z**2 + c`` from zero until ``|z|**2 > 4`` or the bound.

    An escaped point reports the squared magnitude that triggered the escape
    and the number of completed steps before it. A bounded point reports
    *half* the final squared magnitude together with ``max_iteration``.
    """

    x = y = 0.0
    for i in range(max_iteration):
        xy = x * y
        xx = x * x
        yy = y * y
        x = xx - yy + cx
        y = 2 * xy + cy
        norm = x * x + y * y
        if norm > ESCAPE_NORM_SQUARED:
            return SampleResult(norm, i)

    return SampleResult((x * x + y * y) / 2, max_iteration)


def smooth_value(result: SampleResult, max_iteration: int) -> float:
    """Continuous coloring value for a sample; not guarded against ``log(0)``."""

    with np.errstate(divide="ignore", invalid="ignore"):
        log_norm = np.log(np.float64(result.exit_norm_squared))
    return float(max_iteration - result.iteration_count) + float(log_norm)


@tf.function
def _escape_step(
    x: tf.Tensor,
    y: tf.Tensor,
    cx: tf.Tensor,
    cy: tf.Tensor,
    counts: tf.Tensor,
    active: tf.Tensor,
) -> tuple[tf.Tensor, tf.Tensor, tf.Tensor, tf.Tensor]:
    """Advance every point that has not escaped by one iteration."""

    xy = x * y
    xx = x * x
    yy = y * y
    x = tf.where(active, xx - yy + cx, x)
    y = tf.where(active, tf.constant(2.0, dtype=xy.dtype) * xy + cy, y)
    horizon = tf.constant(ESCAPE_NORM_SQUARED, dtype=x.dtype)
    active = tf.logical_and(active, tf.logical_not(x * x + y * y > horizon))
    counts = counts + tf.cast(active, tf.int32)
    return x, y, counts, active


@tf.function
def _escape_run(cx: tf.Tensor, cy: tf.Tensor, max_iteration: tf.Tensor) -> tuple[tf.Tensor, tf.Tensor]:
    max_iteration = tf.cast(max_iteration, tf.int32)
    i = tf.constant(0, dtype=tf.int32)
    x = tf.zeros_like(cx)
    y = tf.zeros_like(cy)
    counts = tf.zeros_like(cx, dtype=tf.int32)
    active = tf.ones_like(counts, dtype=tf.bool)

    def cond(i, x, y, counts, active):
        return tf.logical_and(tf.less(i, max_iteration), tf.reduce_any(active))

    def body(i, x, y, counts, active):
        x, y, counts, active = _escape_step(x, y, cx, cy, counts, active)
        return i + 1, x, y, counts, active

    _, x, y, counts, active = tf.while_loop(cond, body, (i, x, y, counts, active))

    norm = x * x + y * y
    norm = tf.where(active, norm / tf.constant(2.0, dtype=norm.dtype), norm)
    return norm, counts


def sample_grid(cx: np.ndarray, cy: np.ndarray, max_iteration: int) -> tuple[np.ndarray, np.ndarray]:
    """Vectorized :func:`sample` over arrays of matching shape.

    Returns ``(exit_norm_squared, iteration_count)`` arrays with the same
    semantics as calling :func:`sample` on every element.
    """

    cx = np.asarray(cx, dtype=np.float64)
    cy = np.asarray(cy, dtype=np.float64)
    cx, cy = np.broadcast_arrays(cx, cy)

    with tf.device(DEVICE):
        cx_tf = tf.convert_to_tensor(cx, dtype=tf.float64)
        cy_tf = tf.convert_to_tensor(cy, dtype=tf.float64)
        norm, counts = _escape_run(cx_tf, cy_tf, tf.constant(max_iteration, dtype=tf.int32))

    return norm.numpy(), counts.numpy()
