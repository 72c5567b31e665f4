"""
Tests for the command-line walkthrough.

Tests cover:
- Text walkthrough output and exit status
- JSON mode
- Error reporting for invalid options
"""

import json

from run_demo import main

SMALL_ARGS = ["--seq-len", "8", "--d-model", "16", "--n-head", "2", "--d-head", "8"]


class TestWalkthrough:
    """Default text output."""

    def test_prints_every_step(self, capsys):
        """All five steps are shown and the run succeeds."""
        assert main(["Hi!"] + SMALL_ARGS) == 0

        output = capsys.readouterr().out
        for heading in (
            "1. Tokenization",
            "2. Embeddings",
            "3. Attention",
            "4. Processing",
            "5. Next-token probabilities",
        ):
            assert heading in output
        assert "Done!" in output

    def test_true_pca(self, capsys):
        """--pca switches the embedding projection."""
        assert main(["Hi!", "--pca"] + SMALL_ARGS) == 0

        assert "principal components" in capsys.readouterr().out

    def test_generation(self, capsys):
        """--generate prints the prompt with its continuation."""
        assert main(["Hi", "--generate", "2", "--sample"] + SMALL_ARGS) == 0

        assert "Generation" in capsys.readouterr().out

    def test_invalid_temperature(self, capsys):
        """Temperature 0 exits with status 1 and a message."""
        assert main(["Hi!", "--temperature", "0"] + SMALL_ARGS) == 1

        assert "Temperature must be > 0" in capsys.readouterr().err


class TestJsonMode:
    """--json prints the worker response."""

    def test_json_output(self, capsys):
        """The response parses and has seq_len tokens."""
        assert main(["Hi!", "--json", "--top-k", "3"] + SMALL_ARGS) == 0

        payload = json.loads(capsys.readouterr().out)
        assert len(payload["tokens"]) == 8
        assert len(payload["top_tokens"]) == 3

    def test_json_error(self, capsys):
        """Errors are printed as JSON with status 1."""
        assert main(["Hi!", "--json", "--head-view", "9"] + SMALL_ARGS) == 1

        payload = json.loads(capsys.readouterr().out)
        assert "head_view" in payload["error"]
