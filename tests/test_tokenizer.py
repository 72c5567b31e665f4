"""
Tests for the fixed-vocabulary character tokenizer.

Tests cover:
- Vocabulary layout (specials, printable ASCII, unassigned slot)
- Encoding: BOS/EOS, left padding, truncation, dropped characters
- Decoding and the encode/decode round trip
- Mask application
"""

import string

import pytest

from tiny_transformer.config import ConfigurationError
from tiny_transformer.tokenizer import (
    BOS_ID,
    EOS_ID,
    MASK_ID,
    PAD_ID,
    VOCABULARY_SIZE,
    CharTokenizer,
    decode,
    encode,
)

PRINTABLE = "".join(chr(code) for code in range(32, 127))


class TestVocabulary:
    """The id table is fixed."""

    def test_vocabulary_size(self):
        """The tokenizer reports 100 ids."""
        assert CharTokenizer().vocabulary_size == VOCABULARY_SIZE == 100

    def test_special_ids(self):
        """Specials occupy ids 0-3."""
        assert (PAD_ID, BOS_ID, EOS_ID, MASK_ID) == (0, 1, 2, 3)

    def test_printable_ascii_in_order(self):
        """ASCII 32..126 map to ids 4..98 in order."""
        tokenizer = CharTokenizer()
        vocabulary = tokenizer.vocabulary

        for offset, char in enumerate(PRINTABLE):
            assert vocabulary[4 + offset] == char

    def test_unassigned_id_renders_placeholder(self):
        """Id 99 has no character and renders as '?'."""
        assert CharTokenizer().token_to_string(99) == "?"

    def test_vocabulary_copy_is_not_shared(self):
        """Mutating the returned table must not change the tokenizer."""
        tokenizer = CharTokenizer()
        table = tokenizer.vocabulary
        table[4] = "X"

        assert tokenizer.token_to_string(4) == " "


class TestEncoding:
    """Text -> exactly seq_len ids."""

    def test_scenario_hi(self):
        """'Hi!' at seq_len 16 is left-padded after BOS ... EOS."""
        token_ids = encode("Hi!", 16)

        assert token_ids == [PAD_ID] * 11 + [BOS_ID, 44, 77, 5, EOS_ID]

    def test_exact_fit_has_no_padding(self):
        """Text of length seq_len - 2 fills the sequence exactly."""
        token_ids = encode("abc", 5)

        assert token_ids == [BOS_ID, 69, 70, 71, EOS_ID]

    def test_truncation_forces_eos(self):
        """Too-long text keeps the first seq_len - 1 ids and ends with EOS."""
        token_ids = encode("abcdef", 5)

        assert token_ids == [BOS_ID, 69, 70, 71, EOS_ID]

    @pytest.mark.parametrize("text", ["", "a", "hello world", "x" * 200])
    @pytest.mark.parametrize("seq_len", [1, 2, 8, 64])
    def test_fixed_length(self, text, seq_len):
        """Every encoding has exactly seq_len ids."""
        assert len(encode(text, seq_len)) == seq_len

    def test_seq_len_one(self):
        """A single slot can only hold the forced EOS."""
        assert encode("anything", 1) == [EOS_ID]

    def test_empty_text(self):
        """Empty text is just BOS and EOS plus padding."""
        assert encode("", 4) == [PAD_ID, PAD_ID, BOS_ID, EOS_ID]

    def test_out_of_vocabulary_dropped(self):
        """Characters outside printable ASCII are silently dropped."""
        assert encode("héllo\n", 10) == encode("hllo", 10)

    def test_non_positive_seq_len_raises(self):
        """seq_len must be positive."""
        with pytest.raises(ConfigurationError):
            encode("hi", 0)


class TestDecoding:
    """Ids -> text."""

    def test_skips_pad_bos_eos(self):
        """PAD, BOS and EOS do not appear in decoded text."""
        assert decode([PAD_ID, PAD_ID, BOS_ID, 44, 77, EOS_ID]) == "Hi"

    def test_mask_is_rendered(self):
        """MASK is kept and rendered as '<mask>'."""
        assert decode([BOS_ID, 44, MASK_ID, EOS_ID]) == "H<mask>"

    def test_unknown_ids_render_placeholder(self):
        """Ids without a table entry decode to '?'."""
        assert decode([99, 500]) == "??"

    @pytest.mark.parametrize(
        "text", ["", "Hi!", "The quick brown fox.", string.ascii_letters, PRINTABLE]
    )
    def test_roundtrip(self, text):
        """decode(encode(s)) == s for in-vocabulary text that fits."""
        seq_len = len(text) + 2 + 3

        assert decode(encode(text, seq_len)) == text

    def test_roundtrip_tight_fit(self):
        """The round trip also holds when len(s) + 2 == seq_len."""
        assert decode(encode(PRINTABLE, len(PRINTABLE) + 2)) == PRINTABLE


class TestHelpers:
    """Display and mask helpers."""

    def test_token_strings(self):
        """token_strings renders specials by name."""
        tokenizer = CharTokenizer()

        assert tokenizer.token_strings([PAD_ID, BOS_ID, 44, EOS_ID, MASK_ID]) == [
            "<pad>",
            "<bos>",
            "H",
            "<eos>",
            "<mask>",
        ]

    def test_apply_mask(self):
        """apply_mask replaces one position with MASK and copies the rest."""
        tokenizer = CharTokenizer()
        token_ids = encode("Hi!", 8)
        masked = tokenizer.apply_mask(token_ids, 4)

        assert masked[4] == MASK_ID
        assert masked[:4] + masked[5:] == token_ids[:4] + token_ids[5:]
        assert token_ids[4] != MASK_ID

    @pytest.mark.parametrize("mask_index", [None, -1, 8, 100])
    def test_apply_mask_out_of_range_is_noop(self, mask_index):
        """None or an index outside the sequence changes nothing."""
        token_ids = encode("Hi!", 8)

        assert CharTokenizer().apply_mask(token_ids, mask_index) == token_ids

    def test_in_vocabulary(self):
        """Printable ASCII has ids; other characters do not."""
        tokenizer = CharTokenizer()

        assert all(tokenizer.in_vocabulary(char) for char in PRINTABLE)
        assert not tokenizer.in_vocabulary("\n")
        assert not tokenizer.in_vocabulary("\u00e9")
        assert not tokenizer.in_vocabulary("<pad>")

    def test_is_character(self):
        """Only ids bound to printable characters count as characters."""
        tokenizer = CharTokenizer()

        assert tokenizer.is_character(44)
        assert not tokenizer.is_character(EOS_ID)
        assert not tokenizer.is_character(99)
