"""
Text specialization of the Markov chain.

Raw text is split into word and punctuation tokens, broken into sentences
on "break" tokens, and each sentence is trained as its own sequence.
Generation walks from a fresh sentence start until a break token (or the
end of the link) and re-joins tokens with natural punctuation spacing.
"""
from __future__ import annotations

import logging
import re
from typing import Iterable, List

from markov_chain.services.chain import BOUNDARY, Chain, Node

logger = logging.getLogger(__name__)

# Words: runs of anything but space/sentence punctuation/line whitespace.
# Punctuation: runs of . , ! ? - "
TOKEN_PATTERN = re.compile(r'[^ .!?,\-\n\r\t]+|[.,!?\-"]+')

# Tokens that end a sentence
BREAK_TOKENS = frozenset({".", "?", "!", '."', '!"', '?"', ',"'})


def tokenize(text: str) -> List[str]:
    """Split text into word and punctuation tokens."""
    return TOKEN_PATTERN.findall(text)


def split_sentences(tokens: Iterable[str]) -> List[List[str]]:
    """
    Group tokens into training units.

    Each unit ends with (and includes) a break token; tokens after the last
    break form a final, possibly incomplete unit.
    """
    parts: List[List[str]] = []
    words: List[str] = []
    for token in tokens:
        words.append(token)
        if token in BREAK_TOKENS:
            parts.append(words)
            words = []
    if words:
        parts.append(words)
    return parts


def join_tokens(tokens: Iterable[str]) -> str:
    """
    Join tokens with single spaces, gluing break tokens and commas onto the
    previous token.
    """
    pieces: List[str] = []
    for token in tokens:
        if token in BREAK_TOKENS or token == ",":
            pieces.append(token)
        else:
            pieces.append(" " + token)
    result = "".join(pieces)
    return result[1:] if result.startswith(" ") else result


class TextChain(Chain[str]):
    """
    Chain over string tokens with sentence and paragraph generation.

    Example:
        chain = TextChain(order=2)
        chain.train_string("The cat sat. The dog ran!")
        print(chain.generate_paragraph(3))
    """

    def train_string(self, text: str) -> "TextChain":
        """
        Train on raw text, one sequence per sentence.

        Args:
            text: Text to learn from

        Returns:
            self, so calls can be chained
        """
        sentences = split_sentences(tokenize(text))
        for sentence in sentences:
            self.train(sentence)
        logger.debug(f"[Chain] Trained {len(sentences)} sentences (order={self.order})")
        return self

    def generate_sentence(self) -> str:
        """
        Generate one sentence from a fresh (all-boundary) start.

        Stops after a break token is drawn or when the walk reaches the
        boundary marker.
        """
        if self.is_empty():
            return ""

        current: Node = (BOUNDARY,) * self.order
        result: List[str] = []
        while True:
            next_item = self._choose_random_link(current)
            if next_item is BOUNDARY:
                break
            result.append(next_item)
            current = current[1:] + (next_item,)
            if next_item in BREAK_TOKENS:
                break

        return join_tokens(result)

    def generate_paragraph(self, sentences: int) -> str:
        """Generate independent sentences joined by single spaces."""
        return " ".join(self.generate_sentence() for _ in range(max(0, sentences)))

    def generate_text(self, paragraphs: int, sentences: int) -> List[str]:
        """
        Generate several paragraphs.

        Args:
            paragraphs: Number of paragraphs
            sentences: Sentences per paragraph

        Returns:
            List of paragraph strings
        """
        return [self.generate_paragraph(sentences) for _ in range(max(0, paragraphs))]


class TokenTypeError(ValueError):
    """Raised when a chain holding non-string tokens is used as text."""


def check_text_tokens(chain: Chain):
    """
    Raises:
        TokenTypeError: if any token in the chain is not a string
    """
    for node, link in chain.transitions.items():
        for item in (*node, *link):
            if item is not BOUNDARY and not isinstance(item, str):
                raise TokenTypeError(
                    f"text chains need string tokens, found {item!r} of type {type(item).__name__}"
                )


def as_text_chain(chain: Chain) -> TextChain:
    """
    Return the chain as a TextChain, copying its table if needed.

    Raises:
        TokenTypeError: if the chain holds non-string tokens
    """
    if isinstance(chain, TextChain):
        return chain
    check_text_tokens(chain)
    return TextChain(chain.order).merge(chain)
