"""
Multi-Head Causal Self-Attention

This module implements the attention mechanism of the tiny transformer:
scaled dot-product attention under a strict causal mask, and a multi-head
layer that runs it once per head with that head's own projections.

Every intermediate the visualizations need is returned, not just the output:
the pre-mask scores and the attention weights of every head.

Reference: "Attention Is All You Need" (Vaswani et al., 2017) Section 3.2
           https://arxiv.org/abs/1706.03762

Functions:
    create_causal_mask: Lower-triangular boolean mask
    scaled_dot_product_attention: Core attention computation

Classes:
    AttentionTrace: Per-head results of one attention layer
    MultiHeadAttention: Multi-head attention over one layer's weights
"""

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from tiny_transformer.activations import softmax
from tiny_transformer.layers import Linear
from tiny_transformer.weights import LayerWeights


def create_causal_mask(sequence_length: int) -> np.ndarray:
    """
    Create a causal (autoregressive) attention mask.

    Position i may attend to positions 0..i and never to a later position.

    Example for sequence_length=4:
        [[ True, False, False, False],
         [ True,  True, False, False],
         [ True,  True,  True, False],
         [ True,  True,  True,  True]]

    Args:
        sequence_length: Length of the sequence

    Returns:
        Boolean mask of shape (sequence_length, sequence_length),
        True = may attend
    """
    return np.tril(np.ones((sequence_length, sequence_length), dtype=bool))


def scaled_dot_product_attention(
    query: np.ndarray,
    key: np.ndarray,
    value: np.ndarray,
    mask: Optional[np.ndarray] = None,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Compute Scaled Dot-Product Attention.

    Mathematical Formula (from the paper):
        Attention(Q, K, V) = softmax(Q @ K^T / sqrt(d_k)) @ V

    Step-by-step:
        1. Compute attention scores: Q @ K^T
        2. Scale by sqrt(d_k)
        3. Set masked positions to -inf, so they get weight exactly 0
        4. Softmax over keys (a row with nothing allowed falls back to uniform)
        5. Weighted sum of values

    Args:
        query: Shape (..., seq_len_q, d_k)
        key: Shape (..., seq_len_k, d_k)
        value: Shape (..., seq_len_k, d_v)
        mask: Optional boolean mask broadcastable to (..., seq_len_q, seq_len_k).
              True = position can be attended to

    Returns:
        output: Shape (..., seq_len_q, d_v)
        attention_weights: Shape (..., seq_len_q, seq_len_k)
        scores: Scaled scores before masking, same shape as the weights
    """
    d_k = query.shape[-1]

    # Steps 1-2: (..., seq_q, d_k) @ (..., d_k, seq_k) -> (..., seq_q, seq_k)
    scores = np.matmul(query, np.swapaxes(key, -1, -2)) / np.sqrt(d_k)

    # Step 3
    if mask is not None:
        masked_scores = np.where(mask, scores, -np.inf)
    else:
        masked_scores = scores

    # Step 4
    attention_weights = softmax(masked_scores, axis=-1)

    # Step 5: (..., seq_q, seq_k) @ (..., seq_k, d_v) -> (..., seq_q, d_v)
    output = np.matmul(attention_weights, value)

    return output, attention_weights, scores


@dataclass
class AttentionTrace:
    """
    Everything one attention layer computed.

    Attributes:
        output: Projected output, (seq_len, d_model)
        weights: Attention weights, (n_head, seq_len, seq_len)
        scores: Scaled scores before masking, (n_head, seq_len, seq_len)
        queries: (n_head, seq_len, d_head)
        keys: (n_head, seq_len, d_head)
        values: (n_head, seq_len, d_head)
    """

    output: np.ndarray
    weights: np.ndarray
    scores: np.ndarray
    queries: np.ndarray
    keys: np.ndarray
    values: np.ndarray


class MultiHeadAttention:
    """
    Multi-Head Self-Attention over one layer's synthetic weights.

    Mathematical Formula:
        MultiHead(X) = Concat(head_1, ..., head_h) @ W^O
        where head_i = Attention(X @ W^Q_i, X @ W^K_i, X @ W^V_i)

    Each head has its own (d_model, d_head) projections. The concatenated
    head outputs have width n_head * d_head, which need not equal d_model;
    W^O maps that width back to d_model.

    Reference: "Attention Is All You Need" Section 3.2.2
    """

    def __init__(self, layer_weights: LayerWeights):
        self.query_weights = layer_weights.wq
        self.key_weights = layer_weights.wk
        self.value_weights = layer_weights.wv
        self.num_heads, self.embedding_dimension, self.head_dimension = (
            layer_weights.wq.shape
        )
        self.output_projection = Linear(layer_weights.wo)

    def forward(
        self, hidden_states: np.ndarray, mask: Optional[np.ndarray] = None
    ) -> AttentionTrace:
        """
        Run self-attention on one sequence.

        Args:
            hidden_states: Shape (seq_len, d_model)
            mask: Boolean mask (seq_len, seq_len); defaults to causal

        Returns:
            AttentionTrace with the projected output and per-head details
        """
        sequence_length = hidden_states.shape[0]
        if mask is None:
            mask = create_causal_mask(sequence_length)

        # Step 1: Per-head projections
        # (seq, d_model) x (heads, d_model, d_head) -> (heads, seq, d_head)
        queries = np.einsum("sd,hde->hse", hidden_states, self.query_weights)
        keys = np.einsum("sd,hde->hse", hidden_states, self.key_weights)
        values = np.einsum("sd,hde->hse", hidden_states, self.value_weights)

        # Step 2: Attention for all heads at once (mask broadcasts over heads)
        head_outputs, attention_weights, scores = scaled_dot_product_attention(
            queries, keys, values, mask=mask
        )

        # Step 3: Concatenate heads in order
        # (heads, seq, d_head) -> (seq, heads, d_head) -> (seq, heads * d_head)
        concatenated = head_outputs.transpose(1, 0, 2).reshape(
            sequence_length, self.num_heads * self.head_dimension
        )

        # Step 4: Output projection back to d_model
        output = self.output_projection.forward(concatenated)

        return AttentionTrace(
            output=output,
            weights=attention_weights,
            scores=scores,
            queries=queries,
            keys=keys,
            values=values,
        )
