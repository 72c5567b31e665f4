"""
2-D Embedding Projection

Reduces token embedding vectors to two coordinates for the embeddings scatter
plot.

project_2d is the projector the visualization uses. It mean-centres the data
and projects it onto two random unit directions. It does not compute
principal components: the layout depends on the directions drawn, so two
calls only agree when they are given identically seeded RandomSources.

principal_components_2d is a true PCA (top two right singular vectors of the
centred data), available for callers that want a stable, variance-maximising
layout.

Functions:
    project_2d: Projection onto two random unit directions
    principal_components_2d: Projection onto the first two principal axes
"""

from typing import Optional

import numpy as np

from tiny_transformer.prng import RandomSource


def _as_matrix(vectors) -> np.ndarray:
    matrix = np.asarray(vectors, dtype=np.float64)
    if matrix.size == 0:
        return np.zeros((0, 0))
    if matrix.ndim != 2:
        raise ValueError(f"Expected a 2-D array of vectors, got shape {matrix.shape}")
    return matrix


def _unit_direction(random_source: RandomSource, dimension: int) -> np.ndarray:
    direction = random_source.uniform_array(dimension) - 0.5
    norm = np.linalg.norm(direction)
    if norm > 0:
        direction = direction / norm
    return direction


def project_2d(
    vectors, random_source: Optional[RandomSource] = None
) -> np.ndarray:
    """
    Project n vectors of dimension d onto two random unit directions.

    Steps:
        1. Subtract the per-dimension mean
        2. Draw two directions with components uniform in [-0.5, 0.5)
           and normalise each (a zero-length draw is left as zeros)
        3. point[i] = (centered[i] . dir1, centered[i] . dir2)

    Args:
        vectors: Array-like of shape (n, d)
        random_source: Generator for the directions. When omitted a freshly
            seeded one is used and the result differs between calls.

    Returns:
        Array of shape (n, 2); empty input gives shape (0, 2)
    """
    matrix = _as_matrix(vectors)
    if matrix.shape[0] == 0:
        return np.zeros((0, 2))

    if random_source is None:
        random_source = RandomSource(int(np.random.default_rng().integers(2**32)))

    centered = matrix - matrix.mean(axis=0)
    dimension = matrix.shape[1]
    first = _unit_direction(random_source, dimension)
    second = _unit_direction(random_source, dimension)

    return np.stack([centered @ first, centered @ second], axis=1)


def principal_components_2d(vectors) -> np.ndarray:
    """
    Project n vectors onto their first two principal components.

    When d is 1 the second coordinate is zero.

    Args:
        vectors: Array-like of shape (n, d)

    Returns:
        Array of shape (n, 2); empty input gives shape (0, 2)
    """
    matrix = _as_matrix(vectors)
    if matrix.shape[0] == 0:
        return np.zeros((0, 2))

    centered = matrix - matrix.mean(axis=0)
    _, _, right_singular = np.linalg.svd(centered, full_matrices=False)
    components = right_singular[:2]

    points = np.zeros((matrix.shape[0], 2))
    points[:, : components.shape[0]] = centered @ components.T
    return points
