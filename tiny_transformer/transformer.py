"""
Transformer Architecture Components

This module implements the transformer building blocks of the tiny model: the
feed-forward network, the transformer block (attention, FFN, residuals and
normalization), and the stack that runs the blocks in order while recording
a snapshot of the hidden states after each one.

The block is Post-LN, as in the original Transformer:
    h = LayerNorm(h + Attention(h))
    h = LayerNorm(h + FFN(h))

Reference: "Attention Is All You Need" (Vaswani et al., 2017) Section 3.1, 3.3

Classes:
    FeedForwardNetwork: Position-wise feed-forward network
    BlockTrace: Intermediates of one block
    TransformerBlock: Single transformer decoder block
    TransformerStack: Stack of transformer blocks
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from tiny_transformer.activations import gelu
from tiny_transformer.attention import (
    AttentionTrace,
    MultiHeadAttention,
    create_causal_mask,
)
from tiny_transformer.layers import LayerNorm, Linear
from tiny_transformer.weights import LayerWeights


class FeedForwardNetwork:
    """
    Position-wise Feed-Forward Network.

    Applied independently to each position in the sequence:

        FFN(x) = GELU(x @ W_1 + b_1) @ W_2 + b_2

    W_1 expands d_model to d_model * ffn_mult and W_2 compresses it back.

    Reference: "Attention Is All You Need" Section 3.3
    """

    def __init__(
        self, w1: np.ndarray, b1: np.ndarray, w2: np.ndarray, b2: np.ndarray
    ):
        self.linear_1 = Linear(w1, b1)
        self.linear_2 = Linear(w2, b2)

    @property
    def hidden_dimension(self) -> int:
        return self.linear_1.output_features

    def forward(self, input_tensor: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """
        Forward pass through the feed-forward network.

        Args:
            input_tensor: Input of shape (seq_len, d_model)

        Returns:
            (output, activations): output of shape (seq_len, d_model) and the
            GELU activations of shape (seq_len, hidden_dim)
        """
        # Step 1: Expand to hidden dimension
        hidden = self.linear_1.forward(input_tensor)

        # Step 2: Apply GELU activation
        activated = gelu(hidden)

        # Step 3: Compress back to embedding dimension
        output = self.linear_2.forward(activated)

        return output, activated


@dataclass
class BlockTrace:
    """
    Intermediates of one block, kept for the processing visualization.

    Attributes:
        attention: Trace of the attention sub-layer
        post_attention: LayerNorm(x + attention), (seq_len, d_model)
        ffn_activations: GELU activations, (seq_len, d_model * ffn_mult)
        ffn_output: FFN output before the residual, (seq_len, d_model)
        output: Block output, (seq_len, d_model)
    """

    attention: AttentionTrace
    post_attention: np.ndarray
    ffn_activations: np.ndarray
    ffn_output: np.ndarray
    output: np.ndarray


class TransformerBlock:
    """
    Single Transformer Decoder Block (Post-LN).

    Architecture:
        x -> MultiHeadAttention -> + x -> LayerNorm -> h
        h -> FeedForward        -> + h -> LayerNorm -> output

    The LayerNorms have no scale or shift parameters.
    """

    def __init__(self, layer_weights: LayerWeights, epsilon: float = 1e-5):
        """
        Args:
            layer_weights: Weights of this block
            epsilon: LayerNorm epsilon
        """
        self.self_attention = MultiHeadAttention(layer_weights)
        self.feed_forward = FeedForwardNetwork(
            layer_weights.w1, layer_weights.b1, layer_weights.w2, layer_weights.b2
        )
        self.attention_layer_norm = LayerNorm(epsilon)
        self.ffn_layer_norm = LayerNorm(epsilon)

    def forward(
        self, input_tensor: np.ndarray, mask: Optional[np.ndarray] = None
    ) -> BlockTrace:
        """
        Forward pass through the transformer block.

        Args:
            input_tensor: Input of shape (seq_len, d_model)
            mask: Attention mask; defaults to causal

        Returns:
            BlockTrace whose output has shape (seq_len, d_model)
        """
        # ============ Attention Sub-block ============
        attention = self.self_attention.forward(input_tensor, mask=mask)
        post_attention = self.attention_layer_norm.forward(
            input_tensor + attention.output
        )

        # ============ Feed-Forward Sub-block ============
        ffn_output, ffn_activations = self.feed_forward.forward(post_attention)
        output = self.ffn_layer_norm.forward(post_attention + ffn_output)

        return BlockTrace(
            attention=attention,
            post_attention=post_attention,
            ffn_activations=ffn_activations,
            ffn_output=ffn_output,
            output=output,
        )


class TransformerStack:
    """
    Stack of Transformer Blocks.

    Runs the blocks in order with one shared causal mask and returns every
    block's trace, so the caller sees the hidden states after each layer and
    the attention weights of every layer and head.
    """

    def __init__(self, layers: Sequence[LayerWeights], epsilon: float = 1e-5):
        self.blocks: List[TransformerBlock] = [
            TransformerBlock(layer_weights, epsilon=epsilon) for layer_weights in layers
        ]

    @property
    def num_layers(self) -> int:
        return len(self.blocks)

    def forward(self, input_tensor: np.ndarray) -> List[BlockTrace]:
        """
        Forward pass through all transformer blocks.

        Args:
            input_tensor: Embedded input of shape (seq_len, d_model)

        Returns:
            One BlockTrace per block; the last trace's output is the final
            hidden state
        """
        mask = create_causal_mask(input_tensor.shape[0])
        hidden_states = input_tensor
        traces = []

        for block in self.blocks:
            trace = block.forward(hidden_states, mask=mask)
            traces.append(trace)
            hidden_states = trace.output

        return traces
