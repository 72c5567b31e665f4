"""
Synthetic Weight Initialization

The tiny transformer is never trained. Its parameters are drawn once from a
seeded RandomSource, so the same seed always rebuilds the same model and two
independent runs produce identical forward-pass traces.

Every element is gaussian * 0.02, drawn in this fixed order:
    1. token embedding          (vocab, d_model)
    2. positional embedding     (seq_len, d_model)
    3. for each layer:
         wq (n_head, d_model, d_head), wk, wv,
         wo (n_head * d_head, d_model),
         w1 (d_model, d_model * ffn_mult), b1, w2, b2
    4. language-model head      (d_model, vocab)
Within a tensor the order is row-major. Changing any of this changes every
weight that follows.

Classes:
    LayerWeights: Attention and feed-forward parameters of one block
    TransformerWeights: Complete immutable weight set

Functions:
    init_weights: Draw a weight set for given hyperparameters and seed
    count_parameters: Total number of scalar parameters
    parameter_summary: Human-readable parameter count
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Tuple

import numpy as np

from tiny_transformer.config import ConfigurationError, Hyperparameters
from tiny_transformer.prng import RandomSource
from tiny_transformer.tokenizer import VOCABULARY_SIZE

logger = logging.getLogger(__name__)

WEIGHT_SCALE = 0.02


def _check_shape(name: str, array: np.ndarray, expected: Tuple[int, ...]) -> None:
    if array.shape != expected:
        raise ConfigurationError(
            f"Weight '{name}' has shape {array.shape}, expected {expected}"
        )


def _freeze(array: np.ndarray) -> np.ndarray:
    array = np.ascontiguousarray(array, dtype=np.float64)
    array.setflags(write=False)
    return array


@dataclass(frozen=True, eq=False)
class LayerWeights:
    """
    Parameters of one transformer block.

    Attributes:
        wq: Query projections, (n_head, d_model, d_head)
        wk: Key projections, (n_head, d_model, d_head)
        wv: Value projections, (n_head, d_model, d_head)
        wo: Output projection over concatenated heads, (n_head * d_head, d_model)
        w1: FFN expansion, (d_model, d_model * ffn_mult)
        b1: FFN expansion bias, (d_model * ffn_mult,)
        w2: FFN compression, (d_model * ffn_mult, d_model)
        b2: FFN compression bias, (d_model,)
    """

    wq: np.ndarray
    wk: np.ndarray
    wv: np.ndarray
    wo: np.ndarray
    w1: np.ndarray
    b1: np.ndarray
    w2: np.ndarray
    b2: np.ndarray

    def expected_shapes(self, hyper: Hyperparameters) -> Dict[str, Tuple[int, ...]]:
        head_shape = (hyper.n_head, hyper.d_model, hyper.d_head)
        return {
            "wq": head_shape,
            "wk": head_shape,
            "wv": head_shape,
            "wo": (hyper.attention_dim, hyper.d_model),
            "w1": (hyper.d_model, hyper.ffn_hidden_dim),
            "b1": (hyper.ffn_hidden_dim,),
            "w2": (hyper.ffn_hidden_dim, hyper.d_model),
            "b2": (hyper.d_model,),
        }

    def validate(self, hyper: Hyperparameters, layer_index: int) -> None:
        for name, expected in self.expected_shapes(hyper).items():
            _check_shape(f"layers[{layer_index}].{name}", getattr(self, name), expected)

    def parameters(self) -> Dict[str, np.ndarray]:
        return {
            "wq": self.wq,
            "wk": self.wk,
            "wv": self.wv,
            "wo": self.wo,
            "w1": self.w1,
            "b1": self.b1,
            "w2": self.w2,
            "b2": self.b2,
        }


@dataclass(frozen=True, eq=False)
class TransformerWeights:
    """
    Complete weight set for one seed.

    Shapes are checked against the hyperparameters when the object is
    created and every array is made read-only, so a weight set can be shared
    between forward passes without copying.
    """

    hyperparameters: Hyperparameters
    token_embedding: np.ndarray
    positional_embedding: np.ndarray
    layers: Tuple[LayerWeights, ...]
    lm_head: np.ndarray

    def __post_init__(self):
        hyper = self.hyperparameters.validate()

        object.__setattr__(self, "token_embedding", _freeze(self.token_embedding))
        object.__setattr__(
            self, "positional_embedding", _freeze(self.positional_embedding)
        )
        object.__setattr__(self, "lm_head", _freeze(self.lm_head))
        object.__setattr__(
            self,
            "layers",
            tuple(
                LayerWeights(
                    **{k: _freeze(v) for k, v in layer.parameters().items()}
                )
                for layer in self.layers
            ),
        )

        _check_shape(
            "token_embedding", self.token_embedding, (VOCABULARY_SIZE, hyper.d_model)
        )
        _check_shape(
            "positional_embedding",
            self.positional_embedding,
            (hyper.seq_len, hyper.d_model),
        )
        _check_shape("lm_head", self.lm_head, (hyper.d_model, VOCABULARY_SIZE))
        if len(self.layers) != hyper.n_layer:
            raise ConfigurationError(
                f"Expected {hyper.n_layer} layers, got {len(self.layers)}"
            )
        for index, layer in enumerate(self.layers):
            layer.validate(hyper, index)

    def get_parameters(self) -> Dict[str, np.ndarray]:
        """Flat name -> array mapping, in draw order."""
        params = {
            "token_embedding": self.token_embedding,
            "positional_embedding": self.positional_embedding,
        }
        for index, layer in enumerate(self.layers):
            params.update(
                {f"layer{index}_{k}": v for k, v in layer.parameters().items()}
            )
        params["lm_head"] = self.lm_head
        return params


def init_weights(hyper: Hyperparameters, seed: int) -> TransformerWeights:
    """
    Draw a complete synthetic weight set.

    Args:
        hyper: Model architecture; validated before any draw
        seed: Seed for the single RandomSource used for every element

    Returns:
        Immutable TransformerWeights

    Raises:
        ConfigurationError: If the hyperparameters are invalid
    """
    hyper.validate()
    rng = RandomSource(seed)

    def draw(*shape: int) -> np.ndarray:
        return rng.gaussian_array(shape, scale=WEIGHT_SCALE)

    token_embedding = draw(VOCABULARY_SIZE, hyper.d_model)
    positional_embedding = draw(hyper.seq_len, hyper.d_model)

    layers: List[LayerWeights] = []
    for _ in range(hyper.n_layer):
        wq = draw(hyper.n_head, hyper.d_model, hyper.d_head)
        wk = draw(hyper.n_head, hyper.d_model, hyper.d_head)
        wv = draw(hyper.n_head, hyper.d_model, hyper.d_head)
        wo = draw(hyper.attention_dim, hyper.d_model)
        w1 = draw(hyper.d_model, hyper.ffn_hidden_dim)
        b1 = draw(hyper.ffn_hidden_dim)
        w2 = draw(hyper.ffn_hidden_dim, hyper.d_model)
        b2 = draw(hyper.d_model)
        layers.append(
            LayerWeights(wq=wq, wk=wk, wv=wv, wo=wo, w1=w1, b1=b1, w2=w2, b2=b2)
        )

    lm_head = draw(hyper.d_model, VOCABULARY_SIZE)

    weights = TransformerWeights(
        hyperparameters=hyper,
        token_embedding=token_embedding,
        positional_embedding=positional_embedding,
        layers=tuple(layers),
        lm_head=lm_head,
    )
    logger.debug(
        "Initialized %s parameters for seed %d", parameter_summary(hyper), seed
    )
    return weights


def count_parameters(weights: TransformerWeights) -> int:
    """Total number of scalar parameters in a weight set."""
    return sum(param.size for param in weights.get_parameters().values())


def expected_parameter_count(hyper: Hyperparameters) -> int:
    """Parameter count implied by the hyperparameters alone."""
    per_layer = (
        3 * hyper.n_head * hyper.d_model * hyper.d_head
        + hyper.attention_dim * hyper.d_model
        + 2 * hyper.d_model * hyper.ffn_hidden_dim
        + hyper.ffn_hidden_dim
        + hyper.d_model
    )
    return (
        VOCABULARY_SIZE * hyper.d_model
        + hyper.seq_len * hyper.d_model
        + hyper.n_layer * per_layer
        + hyper.d_model * VOCABULARY_SIZE
    )


def parameter_summary(hyper: Hyperparameters) -> str:
    """
    Human-readable parameter count, e.g. '82.8K'.

    >>> parameter_summary(Hyperparameters(d_model=8, n_head=1, d_head=8, n_layer=1, seq_len=4, ffn_mult=1))
    '2.0K'
    """
    count = expected_parameter_count(hyper)
    if count >= 1_000_000:
        return f"{count / 1_000_000:.1f}M"
    if count >= 1_000:
        return f"{count / 1_000:.1f}K"
    return str(count)
