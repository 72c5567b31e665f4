"""
Next-Token Sampling

Turns the final-position logits into the ranked next-token table shown in
the probabilities step: divide by temperature, softmax, sort, keep the top K.

Temperature:
    < 1  sharpens the distribution (as T -> 0 the top token takes everything)
    = 1  leaves it unchanged
    > 1  flattens it (entropy never decreases as T grows)

Classes:
    TokenProbability: One ranked candidate

Functions:
    temperature_softmax: Softmax of logits / temperature
    sample: Ranked top-K candidates
    entropy: Shannon entropy of a distribution
    choose: Draw one candidate with a RandomSource
"""

from typing import List, NamedTuple, Sequence

import numpy as np

from tiny_transformer.activations import softmax
from tiny_transformer.config import ConfigurationError
from tiny_transformer.prng import RandomSource
from tiny_transformer.tokenizer import CharTokenizer

_TOKENIZER = CharTokenizer()


class TokenProbability(NamedTuple):
    """A candidate next token and its probability."""

    token_id: int
    token: str
    probability: float


def temperature_softmax(logits: np.ndarray, temperature: float) -> np.ndarray:
    """
    Softmax of logits scaled by 1 / temperature.

    The maximum is subtracted before dividing, so the top logit stays at 0
    and a tiny temperature pushes the rest to -inf (a one-hot result)
    instead of overflowing every entry.

    Raises:
        ConfigurationError: If temperature is not > 0
    """
    if not temperature > 0:
        raise ConfigurationError(f"Temperature must be > 0, got {temperature!r}")
    logits = np.asarray(logits, dtype=np.float64)
    max_logit = np.max(logits)
    if np.isfinite(max_logit):
        logits = logits - max_logit
    with np.errstate(over="ignore"):
        scaled = logits / temperature
    return softmax(scaled)


def sample(
    logits: np.ndarray, temperature: float, top_k: int
) -> List[TokenProbability]:
    """
    Rank the vocabulary by probability and keep the first top_k entries.

    Ties are broken by ascending token id, so the ranking is deterministic.
    A top_k larger than the vocabulary returns the whole vocabulary.

    Args:
        logits: Raw scores, shape (vocab_size,)
        temperature: Must be > 0
        top_k: Must be > 0

    Returns:
        List of min(top_k, vocab_size) TokenProbability, non-increasing
        probability

    Raises:
        ConfigurationError: On non-positive temperature or top_k
    """
    if top_k <= 0:
        raise ConfigurationError(f"top_k must be positive, got {top_k!r}")

    probabilities = temperature_softmax(logits, temperature)
    token_ids = np.arange(probabilities.shape[0])

    # lexsort sorts by the last key first: -probability, then token id
    order = np.lexsort((token_ids, -probabilities))[:top_k]

    return [
        TokenProbability(
            token_id=int(token_id),
            token=_TOKENIZER.token_to_string(int(token_id)),
            probability=float(probabilities[token_id]),
        )
        for token_id in order
    ]


def entropy(probabilities: np.ndarray) -> float:
    """Shannon entropy in nats; zero-probability entries contribute nothing."""
    probabilities = np.asarray(probabilities, dtype=np.float64)
    nonzero = probabilities[probabilities > 0]
    return float(-np.sum(nonzero * np.log(nonzero)))


def choose(
    candidates: Sequence[TokenProbability], random_source: RandomSource
) -> TokenProbability:
    """
    Draw one candidate with probability proportional to its share of the
    candidates' total mass.

    Args:
        candidates: Output of sample(); must not be empty
        random_source: Generator that supplies the single uniform draw

    Returns:
        The chosen candidate
    """
    if not candidates:
        raise ValueError("Cannot choose from an empty candidate list")

    total = sum(candidate.probability for candidate in candidates)
    threshold = random_source.next() * total
    cumulative = 0.0
    for candidate in candidates:
        cumulative += candidate.probability
        if threshold < cumulative:
            return candidate
    return candidates[-1]
