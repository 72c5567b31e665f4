"""
Configuration for the Tiny Transformer

This module holds the two configuration objects that drive a forward pass:
the architecture hyperparameters (fixed for a given weight set) and the
runtime options (which can change between passes without rebuilding weights).

Both are validated once at the boundary. Invalid values raise
ConfigurationError instead of being silently corrected, because a corrected
value would produce a different (and therefore non-reproducible) trace.

Classes:
    ConfigurationError: Raised for invalid hyperparameters or options
    Hyperparameters: Architecture of the synthetic model
    HyperparametersModel: Wire schema for Hyperparameters (camelCase aliases)
    ForwardOptions: Runtime options for one forward pass
"""

import numbers
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError


class ConfigurationError(ValueError):
    """Invalid hyperparameters or forward options supplied by the caller."""


@dataclass(frozen=True)
class Hyperparameters:
    """
    Architecture of the synthetic transformer.

    Attributes:
        d_model: Width of the residual stream (embedding dimension)
        n_head: Number of attention heads per layer
        d_head: Width of each head's query/key/value projection
        n_layer: Number of transformer blocks
        seq_len: Fixed sequence length of every forward pass
        ffn_mult: Expansion factor of the feed-forward hidden layer
        epsilon: LayerNorm epsilon

    n_head * d_head does not have to equal d_model: the output projection
    maps the concatenated heads (n_head * d_head) back to d_model.

    The defaults match the sandbox the engine was built for:
        d_model=64, n_head=4, d_head=16, n_layer=2, seq_len=64, ffn_mult=2
    """

    d_model: int = 64
    n_head: int = 4
    d_head: int = 16
    n_layer: int = 2
    seq_len: int = 64
    ffn_mult: int = 2
    epsilon: float = 1e-5

    @property
    def ffn_hidden_dim(self) -> int:
        """Hidden width of the feed-forward network."""
        return self.d_model * self.ffn_mult

    @property
    def attention_dim(self) -> int:
        """Width of the concatenated head outputs."""
        return self.n_head * self.d_head

    def validate(self) -> "Hyperparameters":
        """
        Check every field and return self so calls can be chained.

        Raises:
            ConfigurationError: If any integer field is not a positive int,
                or epsilon is not positive.
        """
        for name in ("d_model", "n_head", "d_head", "n_layer", "seq_len", "ffn_mult"):
            value = getattr(self, name)
            is_integer = isinstance(value, numbers.Integral) and not isinstance(
                value, bool
            )
            if not is_integer or value <= 0:
                raise ConfigurationError(
                    f"Hyperparameter '{name}' must be a positive integer, got {value!r}"
                )
        if not self.epsilon > 0:
            raise ConfigurationError(
                f"Hyperparameter 'epsilon' must be positive, got {self.epsilon!r}"
            )
        return self

    def replace(self, **changes: Any) -> "Hyperparameters":
        """Return a copy with some fields changed."""
        values = self.to_dict()
        values.update(changes)
        return Hyperparameters(**values)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> "Hyperparameters":
        """
        Build hyperparameters from a plain dictionary.

        Parsing goes through HyperparametersModel, the same schema the worker
        uses, so the wire keys 'seqLen' and 'eps' are accepted as well as the
        field names. Unknown keys or non-numeric values raise
        ConfigurationError.
        """
        try:
            model = HyperparametersModel.model_validate(values)
        except ValidationError as error:
            raise ConfigurationError(f"Invalid hyperparameters: {error}") from error
        return model.to_hyperparameters()


class HyperparametersModel(BaseModel):
    """Hyperparameters as they arrive on the wire, with camelCase aliases."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    d_model: int = 64
    n_head: int = 4
    d_head: int = 16
    n_layer: int = 2
    seq_len: int = Field(64, alias="seqLen")
    ffn_mult: int = 2
    epsilon: float = Field(1e-5, alias="eps")

    def to_hyperparameters(self) -> Hyperparameters:
        return Hyperparameters(**self.model_dump())


@dataclass(frozen=True)
class ForwardOptions:
    """
    Runtime options for one forward pass.

    Only these five fields are recognised. layer_view and head_view select
    which attention matrix is displayed; the engine always computes the full
    trace. mask_index replaces that position's token with MASK before the
    pass; an index outside the sequence is ignored.
    """

    temperature: float = 0.7
    top_k: int = 10
    layer_view: int = 0
    head_view: int = 0
    mask_index: Optional[int] = None

    def validate(self, hyperparameters: Hyperparameters) -> "ForwardOptions":
        """
        Check ranges against the model the options will be used with.

        Raises:
            ConfigurationError: On non-positive temperature or top_k, or a
                layer/head view outside the model.
        """
        if not self.temperature > 0:
            raise ConfigurationError(
                f"Temperature must be > 0, got {self.temperature!r}"
            )
        if self.top_k <= 0:
            raise ConfigurationError(f"top_k must be positive, got {self.top_k!r}")
        if not 0 <= self.layer_view < hyperparameters.n_layer:
            raise ConfigurationError(
                f"layer_view {self.layer_view} out of range "
                f"[0, {hyperparameters.n_layer})"
            )
        if not 0 <= self.head_view < hyperparameters.n_head:
            raise ConfigurationError(
                f"head_view {self.head_view} out of range "
                f"[0, {hyperparameters.n_head})"
            )
        return self
