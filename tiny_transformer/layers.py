"""
Neural Network Layers for the Tiny Transformer

This module implements the small set of layers the forward pass is built
from. The weights are synthetic and fixed, so the layers only wrap arrays
produced by the weight initializer; nothing here owns or updates parameters.

All implementations are in pure NumPy.

Classes:
    Linear: Affine map y = x @ W + b with W stored as (in, out)
    LayerNorm: Parameter-free per-position normalization

Functions:
    embed: Token embedding lookup plus positional embedding

Reference:
    - "Attention Is All You Need" (Vaswani et al., 2017)
    - "Layer Normalization" (Ba et al., 2016)
"""

from typing import Optional, Sequence

import numpy as np


class Linear:
    """
    Fully Connected (Linear) Layer.

    Computes the affine transformation: y = x @ W + b

    The weight is stored input-major, shape (input_features, output_features),
    which is the layout the weight initializer draws in.

    Attributes:
        weight: Weight matrix of shape (input_features, output_features)
        bias: Bias vector of shape (output_features,) or None
    """

    def __init__(self, weight: np.ndarray, bias: Optional[np.ndarray] = None):
        if weight.ndim != 2:
            raise ValueError(f"Linear weight must be 2-D, got shape {weight.shape}")
        if bias is not None and bias.shape != (weight.shape[1],):
            raise ValueError(
                f"Bias shape {bias.shape} does not match output features "
                f"{weight.shape[1]}"
            )
        self.weight = weight
        self.bias = bias

    @property
    def input_features(self) -> int:
        return self.weight.shape[0]

    @property
    def output_features(self) -> int:
        return self.weight.shape[1]

    def forward(self, input_tensor: np.ndarray) -> np.ndarray:
        """
        Forward pass: y = x @ W + b

        Args:
            input_tensor: Input of shape (..., input_features)

        Returns:
            output_tensor: Output of shape (..., output_features)
        """
        output_tensor = input_tensor @ self.weight
        if self.bias is not None:
            output_tensor = output_tensor + self.bias
        return output_tensor


class LayerNorm:
    """
    Layer Normalization without learnable parameters.

    Formula:
        y = (x - mean) / sqrt(var + eps)

    mean and var are taken over the last (feature) axis, so every sequence
    position is normalized on its own. There is no gamma/beta: the model has
    no trained parameters to scale or shift with.

    Reference: "Layer Normalization" (Ba et al., 2016)
    """

    def __init__(self, epsilon: float = 1e-5):
        """
        Args:
            epsilon: Small constant added to the variance
        """
        self.epsilon = epsilon

    def forward(self, input_tensor: np.ndarray) -> np.ndarray:
        """
        Normalize each position of the input.

        Args:
            input_tensor: Input of shape (..., features)

        Returns:
            Normalized output of the same shape
        """
        mean = np.mean(input_tensor, axis=-1, keepdims=True)
        variance = np.var(input_tensor, axis=-1, keepdims=True)
        return (input_tensor - mean) / np.sqrt(variance + self.epsilon)


def embed(
    token_ids: Sequence[int],
    token_embedding: np.ndarray,
    positional_embedding: np.ndarray,
) -> np.ndarray:
    """
    Look up token embeddings and add positional embeddings.

        hidden[pos] = token_embedding[token_ids[pos]] + positional_embedding[pos]

    Args:
        token_ids: Sequence of token ids, length seq_len
        token_embedding: Table of shape (vocab_size, d_model)
        positional_embedding: Table of shape (max_seq_len, d_model)

    Returns:
        Hidden states of shape (seq_len, d_model)
    """
    token_ids = np.asarray(token_ids, dtype=np.int64)
    sequence_length = token_ids.shape[0]
    if sequence_length > positional_embedding.shape[0]:
        raise ValueError(
            f"Sequence length {sequence_length} exceeds positional table "
            f"length {positional_embedding.shape[0]}"
        )
    if np.any(token_ids < 0) or np.any(token_ids >= token_embedding.shape[0]):
        raise ValueError("Token id outside the embedding table")
    return token_embedding[token_ids] + positional_embedding[:sequence_length]
