"""
Tests for transformer architecture components.

Tests cover:
- Feed-forward network (shapes, GELU activations, formula)
- Transformer block (Post-LN residual structure)
- Transformer stack (per-layer traces, causality)
"""

import numpy as np
import pytest

from tiny_transformer.activations import gelu
from tiny_transformer.config import Hyperparameters
from tiny_transformer.layers import LayerNorm
from tiny_transformer.transformer import (
    FeedForwardNetwork,
    TransformerBlock,
    TransformerStack,
)
from tiny_transformer.weights import init_weights

SMALL = Hyperparameters(d_model=8, n_head=2, d_head=4, n_layer=3, seq_len=6, ffn_mult=2)


@pytest.fixture
def weights():
    return init_weights(SMALL, seed=11)


class TestFeedForwardNetwork:
    """Test suite for the position-wise feed-forward network."""

    def test_shapes(self, weights):
        """Output keeps d_model; activations have d_model * ffn_mult."""
        layer = weights.layers[0]
        ffn = FeedForwardNetwork(layer.w1, layer.b1, layer.w2, layer.b2)

        output, activations = ffn.forward(np.random.randn(6, 8))

        assert output.shape == (6, 8)
        assert activations.shape == (6, 16)
        assert ffn.hidden_dimension == 16

    def test_formula(self, weights):
        """FFN(x) = GELU(x @ W1 + b1) @ W2 + b2."""
        layer = weights.layers[0]
        x = np.random.randn(6, 8)

        output, activations = FeedForwardNetwork(
            layer.w1, layer.b1, layer.w2, layer.b2
        ).forward(x)

        expected_activations = gelu(x @ layer.w1 + layer.b1)
        np.testing.assert_allclose(activations, expected_activations)
        np.testing.assert_allclose(output, expected_activations @ layer.w2 + layer.b2)


class TestTransformerBlock:
    """Test suite for a single Post-LN block."""

    def test_output_shape(self, weights):
        """The block preserves (seq_len, d_model)."""
        trace = TransformerBlock(weights.layers[0]).forward(np.random.randn(6, 8))

        assert trace.output.shape == (6, 8)
        assert trace.post_attention.shape == (6, 8)
        assert trace.ffn_activations.shape == (6, 16)

    def test_post_layer_norm_structure(self, weights):
        """h = LN(x + attn); out = LN(h + ffn)."""
        x = np.random.randn(6, 8)
        trace = TransformerBlock(weights.layers[0]).forward(x)
        norm = LayerNorm()

        np.testing.assert_allclose(
            trace.post_attention, norm.forward(x + trace.attention.output)
        )
        np.testing.assert_allclose(
            trace.output, norm.forward(trace.post_attention + trace.ffn_output)
        )

    def test_output_is_normalised(self, weights):
        """Each output position has mean 0 after the final LayerNorm."""
        trace = TransformerBlock(weights.layers[0]).forward(np.random.randn(6, 8))

        np.testing.assert_allclose(trace.output.mean(axis=-1), np.zeros(6), atol=1e-10)


class TestTransformerStack:
    """Test suite for the stack of blocks."""

    def test_one_trace_per_layer(self, weights):
        """forward returns n_layer traces."""
        stack = TransformerStack(weights.layers)
        traces = stack.forward(np.random.randn(6, 8))

        assert stack.num_layers == 3
        assert len(traces) == 3

    def test_blocks_are_chained(self, weights):
        """Each block consumes the previous block's output."""
        x = np.random.randn(6, 8)
        traces = TransformerStack(weights.layers).forward(x)

        second = TransformerBlock(weights.layers[1]).forward(traces[0].output)
        np.testing.assert_allclose(traces[1].output, second.output)

    def test_stack_is_causal(self, weights):
        """Changing the last position leaves earlier final states unchanged."""
        stack = TransformerStack(weights.layers)
        x = np.random.randn(6, 8)
        changed = x.copy()
        changed[-1] += 1.0

        original = stack.forward(x)[-1].output
        modified = stack.forward(changed)[-1].output

        np.testing.assert_allclose(original[:-1], modified[:-1])
