#!/usr/bin/env python3
"""
Tiny Transformer Demo Script

Runs one forward pass of the seeded tiny transformer and walks through every
step the visualizations show:
1. Tokenization
2. Embeddings (projected to 2-D)
3. Attention (the selected layer and head)
4. Processing (hidden states through the layers)
5. Next-token probabilities

Usage:
    python run_demo.py [prompt] [options]

Example:
    python run_demo.py "Hi!" --seq-len 16 --temperature 0.7 --top-k 5
    python run_demo.py "Hello" --json > trace.json
    python run_demo.py "Hello" --generate 10 --sample
"""

import argparse
import json
import logging
import os
import sys
from typing import List, Optional

import numpy as np

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from tiny_transformer.config import ConfigurationError, ForwardOptions, Hyperparameters
from tiny_transformer.model import ForwardArtifacts, TinyTransformer
from tiny_transformer.prng import RandomSource
from tiny_transformer.projection import principal_components_2d, project_2d
from tiny_transformer.worker import ForwardWorker
from tiny_transformer.weights import init_weights, parameter_summary

SHADES = " .:-=+*#%@"


def print_header(text: str):
    """Print a formatted header."""
    print()
    print("=" * 60)
    print(text)
    print("=" * 60)
    print()


def print_section(text: str):
    """Print a section divider."""
    print()
    print("-" * 40)
    print(text)
    print("-" * 40)


def show_tokenization(artifacts: ForwardArtifacts):
    print_section("1. Tokenization")
    print(f"{len(artifacts.tokens)} tokens (left-padded to the sequence length)")
    for position, (token_id, token) in enumerate(
        zip(artifacts.tokens, artifacts.token_strings)
    ):
        print(f"  [{position:3d}] {token_id:3d}  {token!r}")


def show_embeddings(artifacts: ForwardArtifacts, seed: int, true_pca: bool):
    print_section("2. Embeddings (2-D projection)")
    if true_pca:
        points = principal_components_2d(artifacts.embeddings)
        print("Projection: principal components")
    else:
        points = project_2d(artifacts.embeddings, RandomSource(seed))
        print("Projection: random directions")
    for token, (x, y) in zip(artifacts.token_strings, points):
        print(f"  {token!r:>8}  x={x:+.4f}  y={y:+.4f}")


def show_attention(artifacts: ForwardArtifacts):
    print_section(
        f"3. Attention (layer {artifacts.layer_view}, head {artifacts.head_view})"
    )
    matrix = artifacts.viewed_attention()
    for token, row in zip(artifacts.token_strings, matrix):
        cells = "".join(
            SHADES[min(int(weight * len(SHADES)), len(SHADES) - 1)] for weight in row
        )
        print(f"  {token!r:>8} |{cells}|")


def show_processing(artifacts: ForwardArtifacts, hyper: Hyperparameters):
    print_section("4. Processing")
    print(f"Parameters: {parameter_summary(hyper)}")
    print(f"FLOPs per pass: {artifacts.flops:,}")
    for index, hidden in enumerate(artifacts.hidden_by_layer):
        label = "embedding" if index == 0 else f"layer {index - 1}"
        norm = float(np.linalg.norm(hidden[-1]))
        print(f"  {label:>10}: last-position norm {norm:.4f}")


def show_probabilities(artifacts: ForwardArtifacts):
    print_section("5. Next-token probabilities")
    for rank, candidate in enumerate(artifacts.top_tokens, start=1):
        bar = "#" * int(round(candidate.probability * 40))
        print(
            f"  {rank:2d}. {candidate.token!r:>8} ({candidate.token_id:3d}) "
            f"{candidate.probability:.4f} {bar}"
        )


def build_parser() -> argparse.ArgumentParser:
    defaults = Hyperparameters()
    parser = argparse.ArgumentParser(description="Tiny Transformer Demo")
    parser.add_argument("prompt", nargs="?", default="Hi!", help="Input text")
    parser.add_argument("--seq-len", type=int, default=16)
    parser.add_argument("--temperature", type=float, default=0.7)
    parser.add_argument("--top-k", type=int, default=5)
    parser.add_argument("--layer-view", type=int, default=0)
    parser.add_argument("--head-view", type=int, default=0)
    parser.add_argument("--mask-index", type=int, default=None)
    parser.add_argument("--seed", type=int, default=1337)
    parser.add_argument("--d-model", type=int, default=defaults.d_model)
    parser.add_argument("--n-head", type=int, default=defaults.n_head)
    parser.add_argument("--d-head", type=int, default=defaults.d_head)
    parser.add_argument("--n-layer", type=int, default=defaults.n_layer)
    parser.add_argument("--ffn-mult", type=int, default=defaults.ffn_mult)
    parser.add_argument(
        "--pca", action="store_true", help="Use true PCA for the embedding plot"
    )
    parser.add_argument(
        "--json", action="store_true", help="Print the worker response as JSON"
    )
    parser.add_argument(
        "--generate", type=int, default=0, help="Characters to generate"
    )
    parser.add_argument(
        "--sample", action="store_true", help="Sample instead of greedy generation"
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    hyper = Hyperparameters(
        d_model=args.d_model,
        n_head=args.n_head,
        d_head=args.d_head,
        n_layer=args.n_layer,
        seq_len=args.seq_len,
        ffn_mult=args.ffn_mult,
    )
    request = {
        "text": args.prompt,
        "seq_len": args.seq_len,
        "temperature": args.temperature,
        "top_k": args.top_k,
        "layer_view": args.layer_view,
        "head_view": args.head_view,
        "mask_index": args.mask_index,
        "seed": args.seed,
        "hyperparameters": hyper.to_dict(),
    }

    if args.json:
        with ForwardWorker() as worker:
            response = worker.submit(request).result()
        print(json.dumps(response))
        return 1 if "error" in response else 0

    options = ForwardOptions(
        temperature=args.temperature,
        top_k=args.top_k,
        layer_view=args.layer_view,
        head_view=args.head_view,
        mask_index=args.mask_index,
    )
    try:
        options.validate(hyper.validate())
    except ConfigurationError as error:
        print(f"Error: {error}", file=sys.stderr)
        return 1

    model = TinyTransformer(init_weights(hyper, args.seed))
    artifacts = model.run(args.prompt, options)

    print_header("Tiny Transformer - Forward Pass Walkthrough")
    print(f"Prompt: {args.prompt!r}  seed: {args.seed}")

    show_tokenization(artifacts)
    show_embeddings(artifacts, args.seed, args.pca)
    show_attention(artifacts)
    show_processing(artifacts, hyper)
    show_probabilities(artifacts)

    if args.generate > 0:
        print_section("Generation")
        random_source = RandomSource(args.seed) if args.sample else None
        continuation = model.generate(
            args.prompt, options, args.generate, random_source=random_source
        )
        print(f"{args.prompt}{continuation}")

    print("\nDone!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
