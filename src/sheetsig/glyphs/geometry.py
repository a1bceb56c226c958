"""
Pixel geometry for sheetsig glyphs.

Sections are stored as horizontal runs [y, x_start, length]. Bounds follow the
[x0, y0, x1, y1] convention with exclusive max corners, so a single pixel at
(x, y) has bounds [x, y, x + 1, y + 1].
"""

import numpy as np


def pixel_arrays(runs):
    """
    Expand horizontal runs into pixel coordinate arrays.

    Returns (xs, ys) as float numpy arrays of equal length.
    """
    if not runs:
        return np.zeros(0), np.zeros(0)

    xs = np.concatenate([np.arange(x, x + length) for _, x, length in runs])
    ys = np.concatenate([np.full(length, y) for y, _, length in runs])
    return xs.astype(float), ys.astype(float)


def runs_bounds(runs):
    """Bounds of a collection of runs."""
    if not runs:
        return [0, 0, 0, 0]

    x0 = min(r[1] for r in runs)
    y0 = min(r[0] for r in runs)
    x1 = max(r[1] + r[2] for r in runs)
    y1 = max(r[0] for r in runs) + 1
    return [x0, y0, x1, y1]


def fit_line(xs, ys):
    """
    Least-squares fit of y = slope * x + intercept.

    Degenerate (single column) inputs yield a flat line through the mean ordinate.
    """
    if len(xs) == 0:
        return 0.0, 0.0

    if np.ptp(xs) == 0:
        return 0.0, float(np.mean(ys))

    slope, intercept = np.polyfit(xs, ys, 1)
    return float(slope), float(intercept)


def mean_distance(xs, ys, slope, intercept):
    """Mean orthogonal distance of pixels to the fitted line."""
    if len(xs) == 0:
        return 0.0

    residuals = np.abs(ys - (slope * xs + intercept))
    return float(np.mean(residuals) / np.sqrt(1.0 + slope * slope))


def compute_bbox_from_bboxes(bboxes):
    """
    Compute combined bounding box from multiple bboxes.

    Each bbox is [min_x, min_y, max_x, max_y].
    """
    if not bboxes:
        return [0, 0, 0, 0]

    min_x = min(b[0] for b in bboxes)
    min_y = min(b[1] for b in bboxes)
    max_x = max(b[2] for b in bboxes)
    max_y = max(b[3] for b in bboxes)
    return [min_x, min_y, max_x, max_y]


def x_overlap(b1, b2):
    """Abscissa overlap of two boxes, negative when they are apart."""
    return min(b1[2], b2[2]) - max(b1[0], b2[0])


def y_overlap(b1, b2):
    """Ordinate overlap of two boxes, negative when they are apart."""
    return min(b1[3], b2[3]) - max(b1[1], b2[1])


def boxes_intersect(b1, b2):
    """Strict intersection: touching boxes do not intersect."""
    return x_overlap(b1, b2) > 0 and y_overlap(b1, b2) > 0


def grow_bounds(bbox, dx, dy):
    """Grow a box by dx on left and right, dy on top and bottom."""
    return [bbox[0] - dx, bbox[1] - dy, bbox[2] + dx, bbox[3] + dy]


def translate_bounds(bbox, dx, dy):
    """Shift a box."""
    return [bbox[0] + dx, bbox[1] + dy, bbox[2] + dx, bbox[3] + dy]


def bounds_center(bbox):
    """Center point of a box."""
    return [(bbox[0] + bbox[2]) / 2.0, (bbox[1] + bbox[3]) / 2.0]
