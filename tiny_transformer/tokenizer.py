"""
Fixed-Vocabulary Character Tokenizer

This module implements the tokenizer used by the tiny transformer: a fixed
table of 100 ids with four special tokens followed by the printable ASCII
characters. There is nothing to train. The vocabulary is deliberately tiny so
that every token can be shown on screen.

Vocabulary layout:
    0: <pad>   padding (sequences are padded on the left)
    1: <bos>   beginning of sequence
    2: <eos>   end of sequence
    3: <mask>  replaces a token the user chose to hide
    4..98:     ASCII 32 (' ') .. 126 ('~'), in order
    99:        unassigned, decodes to the placeholder '?'

Every encoded sequence has exactly seq_len ids: BOS, the text, EOS, then
either left padding or truncation with a forced final EOS. Characters outside
printable ASCII are dropped without error.

Classes:
    CharTokenizer: encode, decode and display helpers over the fixed table

Functions:
    encode, decode: Shortcuts bound to a module-level CharTokenizer
"""

from typing import Dict, List, Optional, Sequence

from tiny_transformer.config import ConfigurationError

PAD_ID = 0
BOS_ID = 1
EOS_ID = 2
MASK_ID = 3

VOCABULARY_SIZE = 100
UNKNOWN_GLYPH = "?"

FIRST_PRINTABLE = 32
LAST_PRINTABLE = 126

SPECIAL_TOKENS = {
    PAD_ID: "<pad>",
    BOS_ID: "<bos>",
    EOS_ID: "<eos>",
    MASK_ID: "<mask>",
}


def _build_vocabulary() -> Dict[int, str]:
    vocabulary = dict(SPECIAL_TOKENS)
    token_id = len(SPECIAL_TOKENS)
    for code_point in range(FIRST_PRINTABLE, LAST_PRINTABLE + 1):
        if token_id >= VOCABULARY_SIZE:
            break
        vocabulary[token_id] = chr(code_point)
        token_id += 1
    return vocabulary


class CharTokenizer:
    """
    Character tokenizer over the fixed printable-ASCII vocabulary.

    The id -> string table is shared by all instances and never mutated.

    Example:
        >>> tokenizer = CharTokenizer()
        >>> ids = tokenizer.encode("Hi!", seq_len=8)
        >>> ids
        [0, 0, 0, 1, 44, 77, 5, 2]
        >>> tokenizer.decode(ids)
        'Hi!'
    """

    PAD_TOKEN = SPECIAL_TOKENS[PAD_ID]
    BOS_TOKEN = SPECIAL_TOKENS[BOS_ID]
    EOS_TOKEN = SPECIAL_TOKENS[EOS_ID]
    MASK_TOKEN = SPECIAL_TOKENS[MASK_ID]

    _VOCABULARY: Dict[int, str] = _build_vocabulary()
    _CHAR_TO_ID: Dict[str, int] = {
        token: token_id
        for token_id, token in _VOCABULARY.items()
        if token_id not in SPECIAL_TOKENS
    }

    pad_token_id = PAD_ID
    bos_token_id = BOS_ID
    eos_token_id = EOS_ID
    mask_token_id = MASK_ID

    @property
    def vocabulary_size(self) -> int:
        """Number of ids in the table, including unassigned slots."""
        return VOCABULARY_SIZE

    @property
    def vocabulary(self) -> Dict[int, str]:
        """Copy of the id -> token table."""
        return dict(self._VOCABULARY)

    def encode(self, text: str, seq_len: int) -> List[int]:
        """
        Encode text into exactly seq_len token ids.

        Process:
        1. Start with BOS
        2. Append the id of every in-vocabulary character (others dropped)
        3. Append EOS
        4. If too long, keep the first seq_len - 1 ids and end with EOS;
           otherwise pad on the left with PAD

        Args:
            text: Input text
            seq_len: Length of the returned sequence

        Returns:
            List of seq_len integer token ids

        Raises:
            ConfigurationError: If seq_len is not positive
        """
        if seq_len <= 0:
            raise ConfigurationError(f"seq_len must be positive, got {seq_len!r}")

        token_ids = [BOS_ID]
        for char in text:
            if self.in_vocabulary(char):
                token_ids.append(self._CHAR_TO_ID[char])
        token_ids.append(EOS_ID)

        if len(token_ids) > seq_len:
            return token_ids[: seq_len - 1] + [EOS_ID]

        padding = [PAD_ID] * (seq_len - len(token_ids))
        return padding + token_ids

    def decode(self, token_ids: Sequence[int]) -> str:
        """
        Decode token ids back into text.

        PAD, BOS and EOS are skipped. MASK decodes to '<mask>' and any id
        without a table entry decodes to '?'.
        """
        skipped = (PAD_ID, BOS_ID, EOS_ID)
        pieces = [
            self.token_to_string(token_id)
            for token_id in token_ids
            if int(token_id) not in skipped
        ]
        return "".join(pieces)

    def token_to_string(self, token_id: int) -> str:
        """Display string for a single id."""
        return self._VOCABULARY.get(int(token_id), UNKNOWN_GLYPH)

    def token_strings(self, token_ids: Sequence[int]) -> List[str]:
        """Display strings for every id, specials included."""
        return [self.token_to_string(token_id) for token_id in token_ids]

    def apply_mask(
        self, token_ids: Sequence[int], mask_index: Optional[int]
    ) -> List[int]:
        """
        Replace one position with the MASK token.

        The index comes from the UI and is only a hint: None or an index
        outside the sequence returns an unchanged copy.
        """
        masked = [int(token_id) for token_id in token_ids]
        if mask_index is not None and 0 <= mask_index < len(masked):
            masked[mask_index] = MASK_ID
        return masked

    def in_vocabulary(self, char: str) -> bool:
        """Whether a character has its own id."""
        return char in self._CHAR_TO_ID

    def is_character(self, token_id: int) -> bool:
        """Whether an id stands for a printable character (not a special)."""
        token_id = int(token_id)
        return token_id not in SPECIAL_TOKENS and token_id in self._VOCABULARY


_DEFAULT_TOKENIZER = CharTokenizer()


def encode(text: str, seq_len: int) -> List[int]:
    """Encode with the shared tokenizer."""
    return _DEFAULT_TOKENIZER.encode(text, seq_len)


def decode(token_ids: Sequence[int]) -> str:
    """Decode with the shared tokenizer."""
    return _DEFAULT_TOKENIZER.decode(token_ids)
