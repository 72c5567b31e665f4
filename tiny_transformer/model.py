"""
Tiny Transformer Forward Engine

This module assembles the components into the forward pass the
visualizations are driven by. The model is decoder-only and untrained: its
weights are synthetic and fixed by a seed, so the point of a pass is the shape
of the computation, recorded step by step, not the quality of the prediction.

Architecture Overview:
    Input Token IDs (length seq_len)
           |
    [Token Embedding] + [Positional Embedding]
           |
    [Transformer Block] x n_layer
       - Multi-Head Self-Attention (causal)
       - Residual Connection + LayerNorm
       - Feed-Forward Network
       - Residual Connection + LayerNorm
           |
    [LM Head] on the last position only -> Vocabulary Logits
           |
    [Temperature Softmax] -> Top-K Token Probabilities

Every pass returns a ForwardArtifacts trace holding the hidden states before
the first block and after every block, the attention weights of every layer
and head, and the final logits. layer_view and head_view only choose which
attention matrix is displayed; the full trace is always computed.

Classes:
    ForwardArtifacts: Complete trace of one forward pass
    TinyTransformer: Forward engine over one weight set

Functions:
    estimate_flops: Floating point operations of one forward pass
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from tiny_transformer.config import ConfigurationError, ForwardOptions, Hyperparameters
from tiny_transformer.layers import embed
from tiny_transformer.prng import RandomSource
from tiny_transformer.sampler import TokenProbability, choose, sample, temperature_softmax
from tiny_transformer.tokenizer import VOCABULARY_SIZE, CharTokenizer
from tiny_transformer.transformer import TransformerStack
from tiny_transformer.weights import TransformerWeights


@dataclass(eq=False)
class ForwardArtifacts:
    """
    Trace of one forward pass.

    Created fresh by every call and never modified afterwards.

    Attributes:
        tokens: Token ids, (seq_len,)
        token_strings: Display string of every token
        embeddings: Token + positional embedding, (seq_len, d_model)
        positional: Positional embedding rows used, (seq_len, d_model)
        hidden_by_layer: Hidden states before layer 0 and after every layer,
            (n_layer + 1, seq_len, d_model)
        attention_by_layer_head: Attention weights,
            (n_layer, n_head, seq_len, seq_len)
        attention_scores: Scaled scores before masking, same shape
        ffn_activations: GELU activations, (n_layer, seq_len, d_model * ffn_mult)
        last_logits: Logits of the last position, (vocab_size,)
        probabilities: Temperature softmax of last_logits, (vocab_size,)
        top_tokens: Ranked top-K candidates
        layer_view: Layer of the displayed attention matrix
        head_view: Head of the displayed attention matrix
        flops: Estimated floating point operations of the pass
    """

    tokens: np.ndarray
    token_strings: List[str]
    embeddings: np.ndarray
    positional: np.ndarray
    hidden_by_layer: np.ndarray
    attention_by_layer_head: np.ndarray
    attention_scores: np.ndarray
    ffn_activations: np.ndarray
    last_logits: np.ndarray
    probabilities: np.ndarray
    top_tokens: List[TokenProbability]
    layer_view: int
    head_view: int
    flops: int

    def viewed_attention(self) -> np.ndarray:
        """Attention matrix of the selected layer and head, (seq_len, seq_len)."""
        return self.attention_by_layer_head[self.layer_view, self.head_view]

    def to_dict(self) -> Dict[str, Any]:
        """JSON-compatible representation (nested lists of numbers)."""
        return {
            "tokens": self.tokens.tolist(),
            "token_strings": list(self.token_strings),
            "embeddings": self.embeddings.tolist(),
            "positional": self.positional.tolist(),
            "hidden_by_layer": self.hidden_by_layer.tolist(),
            "attention_by_layer_head": self.attention_by_layer_head.tolist(),
            "attention_scores": self.attention_scores.tolist(),
            "ffn_activations": self.ffn_activations.tolist(),
            "last_logits": self.last_logits.tolist(),
            "probabilities": self.probabilities.tolist(),
            "top_tokens": [candidate._asdict() for candidate in self.top_tokens],
            "layer_view": self.layer_view,
            "head_view": self.head_view,
            "flops": self.flops,
        }


def estimate_flops(hyper: Hyperparameters) -> int:
    """
    Floating point operations of one forward pass (2 per multiply-add).

    Counts the embedding add, the Q/K/V projections, scores, weighted sums,
    output projection and FFN of every layer, and the LM head on the last
    position. Softmax, GELU and LayerNorm are ignored.
    """
    s, d = hyper.seq_len, hyper.d_model
    per_layer = (
        3 * hyper.n_head * s * d * hyper.d_head  # Q, K, V
        + 2 * hyper.n_head * s * s * hyper.d_head  # scores and weighted sum
        + s * hyper.attention_dim * d  # output projection
        + 2 * s * d * hyper.ffn_hidden_dim  # FFN
    )
    multiply_adds = hyper.n_layer * per_layer + d * VOCABULARY_SIZE
    return 2 * multiply_adds + s * d


class TinyTransformer:
    """
    Forward engine over one immutable weight set.

    The engine keeps no state between calls: every pass builds its own
    trace, so one instance can serve any number of passes.

    Example usage:
        weights = init_weights(Hyperparameters(seq_len=16), seed=1337)
        model = TinyTransformer(weights)
        artifacts = model.run("Hi!", ForwardOptions(temperature=0.7, top_k=5))
        artifacts.top_tokens[0]   # most likely next token
    """

    def __init__(self, weights: TransformerWeights):
        self.weights = weights
        self.hyperparameters = weights.hyperparameters
        self.tokenizer = CharTokenizer()
        self.transformer_stack = TransformerStack(
            weights.layers, epsilon=self.hyperparameters.epsilon
        )

    def forward(
        self, token_ids: Sequence[int], options: ForwardOptions
    ) -> ForwardArtifacts:
        """
        Run the forward pass on an already tokenized sequence.

        Args:
            token_ids: Exactly seq_len token ids
            options: Runtime options; validated against the model

        Returns:
            ForwardArtifacts for this pass

        Raises:
            ConfigurationError: On invalid options or a sequence of the
                wrong length
        """
        hyper = self.hyperparameters
        options.validate(hyper)

        tokens = np.asarray(token_ids, dtype=np.int64)
        if tokens.shape != (hyper.seq_len,):
            raise ConfigurationError(
                f"Expected {hyper.seq_len} token ids, got shape {tokens.shape}"
            )

        # Step 1: Token + positional embedding
        # (seq_len,) -> (seq_len, d_model)
        embeddings = embed(
            tokens, self.weights.token_embedding, self.weights.positional_embedding
        )

        # Step 2: All transformer blocks, keeping every intermediate
        traces = self.transformer_stack.forward(embeddings)
        final_hidden = traces[-1].output

        # Step 3: LM head on the last position only
        # (d_model,) @ (d_model, vocab) -> (vocab,)
        last_logits = final_hidden[-1] @ self.weights.lm_head

        # Step 4: Next-token probabilities
        probabilities = temperature_softmax(last_logits, options.temperature)
        top_tokens = sample(last_logits, options.temperature, options.top_k)

        return ForwardArtifacts(
            tokens=tokens,
            token_strings=self.tokenizer.token_strings(tokens),
            embeddings=embeddings,
            positional=np.array(self.weights.positional_embedding[: hyper.seq_len]),
            hidden_by_layer=np.stack(
                [embeddings] + [trace.output for trace in traces]
            ),
            attention_by_layer_head=np.stack(
                [trace.attention.weights for trace in traces]
            ),
            attention_scores=np.stack([trace.attention.scores for trace in traces]),
            ffn_activations=np.stack([trace.ffn_activations for trace in traces]),
            last_logits=last_logits,
            probabilities=probabilities,
            top_tokens=top_tokens,
            layer_view=options.layer_view,
            head_view=options.head_view,
            flops=estimate_flops(hyper),
        )

    def run(self, text: str, options: ForwardOptions) -> ForwardArtifacts:
        """
        Tokenize text, apply the optional mask and run the forward pass.

        An out-of-range mask_index is ignored.
        """
        token_ids = self.tokenizer.encode(text, self.hyperparameters.seq_len)
        token_ids = self.tokenizer.apply_mask(token_ids, options.mask_index)
        return self.forward(token_ids, options)

    def generate(
        self,
        text: str,
        options: ForwardOptions,
        max_new_tokens: int,
        random_source: Optional[RandomSource] = None,
    ) -> str:
        """
        Extend text one character at a time.

        Each step runs a full pass on the current text and picks the next
        token from the top-K candidates: the most likely one when no
        random_source is given, otherwise a draw from it. Generation stops
        early if a special or unassigned token is picked.

        Args:
            text: Prompt
            options: Runtime options (temperature and top_k shape the choice)
            max_new_tokens: Maximum number of characters to add
            random_source: Optional generator for stochastic choice

        Returns:
            The generated continuation (without the prompt)
        """
        generated = []
        for _ in range(max_new_tokens):
            artifacts = self.run(text + "".join(generated), options)
            if random_source is None:
                candidate = artifacts.top_tokens[0]
            else:
                candidate = choose(artifacts.top_tokens, random_source)

            if not self.tokenizer.is_character(candidate.token_id):
                break
            generated.append(candidate.token)

        return "".join(generated)
