"""
Activation Functions

This module implements the activation functions used by the forward pass.
The engine is inference-only, so there are no backward passes here.

All implementations are in pure NumPy.

Functions:
    softmax: Converts scores to a probability distribution
    gelu: Gaussian Error Linear Unit (tanh approximation)

Reference:
    - "Attention Is All You Need" (Vaswani et al., 2017) - Softmax in attention
    - "Gaussian Error Linear Units" (Hendrycks & Gimpel, 2016) - GELU activation
"""

import logging

import numpy as np

logger = logging.getLogger(__name__)


def softmax(logits: np.ndarray, axis: int = -1) -> np.ndarray:
    """
    Compute softmax activation function.

    Converts a vector of arbitrary real values (logits) into a probability
    distribution where all values are positive and sum to 1.

    Mathematical Formula:
        softmax(x)_i = exp(x_i) / sum_j(exp(x_j))

    Numerical Stability:
        We subtract max(x) from all values before exponentiation to prevent
        overflow. This doesn't change the result because:
        exp(x_i - max) / sum(exp(x_j - max)) = exp(x_i) / sum(exp(x_j))

        Entries equal to -inf become exactly 0.

    Degenerate rows:
        A row with no finite maximum (every entry -inf, e.g. from a badly
        built mask) has no meaningful distribution. It is replaced by the
        uniform distribution over the row and a warning is logged; the
        caller still gets a valid probability vector.

    Args:
        logits: Input array of any shape. Softmax is applied along the
                specified axis.
        axis: The axis along which to compute softmax. Default is -1 (last axis),
              which is standard for attention mechanisms.

    Returns:
        probabilities: Array of same shape as input, with softmax applied along
                      the specified axis. Values along that axis sum to 1.

    Example:
        >>> logits = np.array([1.0, 2.0, 3.0])
        >>> probs = softmax(logits)
        >>> print(probs)  # [0.09, 0.24, 0.67]
        >>> print(np.sum(probs))  # 1.0
    """
    logits = np.asarray(logits, dtype=np.float64)

    # Step 1: Subtract maximum for numerical stability
    max_logit = np.max(logits, axis=axis, keepdims=True)
    degenerate = ~np.isfinite(max_logit)
    if np.any(degenerate):
        logger.warning(
            "softmax: %d row(s) without a finite entry, using uniform fallback",
            int(np.sum(degenerate)),
        )
        max_logit = np.where(degenerate, 0.0, max_logit)

    with np.errstate(invalid="ignore"):
        stable_logits = logits - max_logit

    # Step 2: Compute exponentials (exp(x - max) <= 1, so no overflow)
    exponentials = np.exp(stable_logits)

    # Step 3: Normalize to get probabilities
    sum_of_exponentials = np.sum(exponentials, axis=axis, keepdims=True)
    degenerate = degenerate | ~(sum_of_exponentials > 0)
    sum_of_exponentials = np.where(degenerate, 1.0, sum_of_exponentials)
    probabilities = exponentials / sum_of_exponentials

    if np.any(degenerate):
        uniform = 1.0 / logits.shape[axis]
        probabilities = np.where(degenerate, uniform, probabilities)

    return probabilities


def gelu(x: np.ndarray) -> np.ndarray:
    """
    Compute GELU (Gaussian Error Linear Unit) activation.

    GELU is the activation function used in GPT-2, GPT-3, and BERT.
    It provides a smooth approximation to ReLU that allows small negative
    values to pass through.

    Approximation used here:
        GELU(x) ≈ 0.5 * x * (1 + tanh(sqrt(2/pi) * (x + 0.044715 * x^3)))

    Properties:
        - GELU(0) = 0
        - GELU(x) ≈ x for large positive x
        - GELU(x) ≈ 0 for large negative x

    Reference:
        "Gaussian Error Linear Units (GELUs)" (Hendrycks & Gimpel, 2016)
        https://arxiv.org/abs/1606.08415

    Args:
        x: Input array of any shape.

    Returns:
        Output array of same shape with GELU applied element-wise.

    Example:
        >>> x = np.array([-1.0, 0.0, 1.0])
        >>> gelu(x)
        array([-0.159, 0.0, 0.841])
    """
    # Constants for the tanh approximation
    sqrt_2_over_pi = np.sqrt(2.0 / np.pi)  # ≈ 0.7979
    cubic_coefficient = 0.044715

    # Compute the inner expression: sqrt(2/pi) * (x + 0.044715 * x^3)
    cubic_term = cubic_coefficient * np.power(x, 3)
    inner_expression = sqrt_2_over_pi * (x + cubic_term)

    # Final GELU formula: 0.5 * x * (1 + tanh(...))
    return 0.5 * x * (1.0 + np.tanh(inner_expression))
