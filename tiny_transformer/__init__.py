"""
Tiny Transformer: a Seeded Forward-Pass Engine for Visualization

This package implements a miniature decoder-only transformer whose weights
are drawn from a fixed seed instead of being trained. A forward pass records
every intermediate (tokens, embeddings, per-head attention, hidden states,
logits) so each step of inference can be displayed. Everything is NumPy.

Modules:
    config: Hyperparameters, forward options and ConfigurationError
    prng: Deterministic Mulberry32 generator with Box-Muller Gaussians
    tokenizer: Fixed 100-id printable-ASCII tokenizer
    weights: Synthetic weight initialization in a fixed draw order
    activations: Activation functions (softmax, GELU)
    layers: Linear, parameter-free LayerNorm, embedding lookup
    attention: Causal multi-head self-attention
    transformer: Feed-forward network, transformer blocks and stack
    model: Forward engine and the ForwardArtifacts trace
    sampler: Temperature softmax and top-K ranking
    projection: 2-D projection of embeddings
    worker: Request/response boundary with a single-entry weight cache

Reference:
    "Attention Is All You Need" (Vaswani et al., 2017)
    https://arxiv.org/abs/1706.03762
"""

__version__ = "1.0.0"
