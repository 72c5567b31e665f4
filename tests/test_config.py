"""
Tests for hyperparameters and forward options.

Tests cover:
- Defaults and derived widths
- Validation errors
- Dictionary conversion (including the camelCase seqLen key)
- Option validation against a model
"""

import numpy as np
import pytest

from tiny_transformer.config import (
    ConfigurationError,
    ForwardOptions,
    Hyperparameters,
    HyperparametersModel,
)
from tiny_transformer.weights import init_weights


class TestHyperparameters:
    """Architecture configuration."""

    def test_defaults(self):
        """Defaults describe the 64-wide, 2-layer sandbox model."""
        hyper = Hyperparameters()

        assert (hyper.d_model, hyper.n_head, hyper.d_head) == (64, 4, 16)
        assert (hyper.n_layer, hyper.seq_len, hyper.ffn_mult) == (2, 64, 2)
        assert hyper.epsilon == 1e-5

    def test_derived_widths(self):
        """FFN and attention widths follow from the other fields."""
        hyper = Hyperparameters(d_model=10, n_head=3, d_head=5, ffn_mult=4)

        assert hyper.ffn_hidden_dim == 40
        assert hyper.attention_dim == 15

    def test_validate_returns_self(self):
        """validate() can be chained."""
        hyper = Hyperparameters()

        assert hyper.validate() is hyper

    @pytest.mark.parametrize(
        "field,value",
        [
            ("d_model", 0),
            ("n_head", -1),
            ("d_head", 2.5),
            ("n_layer", True),
            ("seq_len", 0),
            ("ffn_mult", "2"),
        ],
    )
    def test_rejects_bad_integers(self, field, value):
        """Integer fields must be positive ints."""
        with pytest.raises(ConfigurationError, match=field):
            Hyperparameters(**{field: value}).validate()

    @pytest.mark.parametrize("epsilon", [0.0, -1e-5])
    def test_rejects_bad_epsilon(self, epsilon):
        """epsilon must be positive."""
        with pytest.raises(ConfigurationError, match="epsilon"):
            Hyperparameters(epsilon=epsilon).validate()

    def test_is_hashable_and_comparable(self):
        """Equal hyperparameters compare and hash equal."""
        assert Hyperparameters(seq_len=16) == Hyperparameters(seq_len=16)
        assert hash(Hyperparameters(seq_len=16)) == hash(Hyperparameters(seq_len=16))
        assert Hyperparameters(seq_len=16) != Hyperparameters(seq_len=32)

    def test_replace(self):
        """replace() changes only the given fields."""
        hyper = Hyperparameters().replace(seq_len=16)

        assert hyper.seq_len == 16
        assert hyper.d_model == 64

    def test_dict_roundtrip(self):
        """to_dict and from_dict are inverses."""
        hyper = Hyperparameters(d_model=32, n_layer=3)

        assert Hyperparameters.from_dict(hyper.to_dict()) == hyper

    def test_from_dict_accepts_camel_case_seq_len(self):
        """The wire key seqLen maps to seq_len."""
        assert Hyperparameters.from_dict({"seqLen": 16}).seq_len == 16

    def test_from_dict_rejects_unknown_keys(self):
        """Unknown keys are reported, not ignored."""
        with pytest.raises(ConfigurationError, match="vocab_size"):
            Hyperparameters.from_dict({"vocab_size": 200})

    def test_from_dict_rejects_non_numeric_values(self):
        """Values that are not numbers are reported."""
        with pytest.raises(ConfigurationError, match="d_model"):
            Hyperparameters.from_dict({"d_model": "wide"})

    def test_from_dict_agrees_with_wire_schema(self):
        """from_dict and the worker's schema parse the same keys the same way."""
        wire = {"d_model": 32, "seqLen": 8, "eps": 1e-6}

        parsed = Hyperparameters.from_dict(wire)

        assert parsed == HyperparametersModel.model_validate(wire).to_hyperparameters()
        assert (parsed.seq_len, parsed.epsilon) == (8, 1e-6)

    def test_accepts_numpy_integers(self):
        """Integer fields may be NumPy integers."""
        hyper = Hyperparameters(d_model=np.int64(32), seq_len=np.int32(8))

        assert hyper.validate() is hyper
        assert init_weights(hyper, seed=1).token_embedding.shape == (100, 32)

    def test_rejects_numpy_bool(self):
        """NumPy booleans are not integers either."""
        with pytest.raises(ConfigurationError, match="n_layer"):
            Hyperparameters(n_layer=np.bool_(True)).validate()


class TestForwardOptions:
    """Runtime options."""

    HYPER = Hyperparameters(n_layer=2, n_head=4)

    def test_defaults(self):
        """Defaults: temperature 0.7, top 10, first layer and head, no mask."""
        options = ForwardOptions()

        assert options.temperature == 0.7
        assert options.top_k == 10
        assert (options.layer_view, options.head_view) == (0, 0)
        assert options.mask_index is None

    def test_valid_options_pass(self):
        """In-range options validate and return self."""
        options = ForwardOptions(temperature=1.5, top_k=3, layer_view=1, head_view=3)

        assert options.validate(self.HYPER) is options

    @pytest.mark.parametrize("temperature", [0.0, -0.5])
    def test_rejects_temperature(self, temperature):
        """Temperature must be > 0."""
        with pytest.raises(ConfigurationError, match="Temperature must be > 0"):
            ForwardOptions(temperature=temperature).validate(self.HYPER)

    def test_rejects_top_k(self):
        """top_k must be positive."""
        with pytest.raises(ConfigurationError, match="top_k"):
            ForwardOptions(top_k=0).validate(self.HYPER)

    @pytest.mark.parametrize("layer_view", [-1, 2])
    def test_rejects_layer_view(self, layer_view):
        """layer_view must name an existing layer."""
        with pytest.raises(ConfigurationError, match="layer_view"):
            ForwardOptions(layer_view=layer_view).validate(self.HYPER)

    @pytest.mark.parametrize("head_view", [-1, 4])
    def test_rejects_head_view(self, head_view):
        """head_view must name an existing head."""
        with pytest.raises(ConfigurationError, match="head_view"):
            ForwardOptions(head_view=head_view).validate(self.HYPER)

    def test_mask_index_is_not_range_checked(self):
        """An out-of-range mask index is accepted and later ignored."""
        ForwardOptions(mask_index=1000).validate(self.HYPER)

    def test_configuration_error_is_value_error(self):
        """Callers can catch ConfigurationError as ValueError."""
        assert issubclass(ConfigurationError, ValueError)
