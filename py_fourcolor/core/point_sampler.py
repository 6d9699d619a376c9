"""Seed point sampling for tessellated maps."""

import math
from typing import Optional

import numpy as np
import structlog

from ..config.tolerances import SamplerSettings
from .alea_prng import RandomSource

logger = structlog.get_logger()


def min_separation(count: int, width: float, settings: Optional[SamplerSettings] = None) -> float:
    """Minimum distance between accepted points: ``width / sqrt(count) / 2.2``."""
    settings = settings or SamplerSettings()
    if count <= 0:
        return 0.0
    return width / math.sqrt(count) / settings.separation_divisor


def sample_points(
    count: int,
    width: float,
    height: float,
    rng: RandomSource,
    settings: Optional[SamplerSettings] = None,
) -> np.ndarray:
    """
    Produce ``count`` well-spaced points inside a ``width`` x ``height`` rectangle.

    Approximates blue noise with rejection sampling: uniform candidates are
    drawn inside the rectangle inset by a 5% margin, and a candidate is kept
    when it is farther than :func:`min_separation` from every point kept so
    far. After ``120 * count`` attempts the remaining points are filled with
    plain uniform draws over the full rectangle, so exactly ``count`` points
    are always returned.

    Args:
        count: Number of points wanted
        width: Rectangle width
        height: Rectangle height
        rng: Random source; the same seed yields the same points
        settings: Margin, separation and attempt budget

    Returns:
        Array of shape (count, 2) with [x, y] rows
    """
    settings = settings or SamplerSettings()
    if count <= 0:
        return np.zeros((0, 2), dtype=float)

    min_dist = min_separation(count, width, settings)
    margin_x = width * settings.margin_ratio
    margin_y = height * settings.margin_ratio
    max_attempts = count * settings.attempts_per_point

    points = np.zeros((count, 2), dtype=float)
    accepted = 0
    attempts = 0
    while accepted < count and attempts < max_attempts:
        x = rng.uniform(margin_x, width - margin_x)
        y = rng.uniform(margin_y, height - margin_y)
        if accepted == 0 or np.all(
            np.hypot(points[:accepted, 0] - x, points[:accepted, 1] - y) > min_dist
        ):
            points[accepted] = (x, y)
            accepted += 1
        attempts += 1

    if accepted < count:
        logger.info("Rejection budget exhausted, filling uniformly",
                    accepted=accepted, requested=count, attempts=attempts)
    while accepted < count:
        points[accepted] = (rng.uniform(0, width), rng.uniform(0, height))
        accepted += 1

    return points
