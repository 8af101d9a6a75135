"""
Shared pytest fixtures for chain tests.
"""
import random
from pathlib import Path
from typing import List

import pytest

from markov_chain.services.chain import Chain
from markov_chain.services.text_chain import TextChain


SAMPLE_TEXT = (
    "The universe is full of amazing wonders. "
    "I love exploring new planets and stars! "
    "Would you like to play a game together? "
    "Friends always support each other, and the stars are beautiful tonight. "
    "\"Safety first,\" she said."
)


@pytest.fixture
def rng() -> random.Random:
    """Seeded random source for reproducible generation."""
    return random.Random(1234)


@pytest.fixture
def int_sequences() -> List[List[int]]:
    """Small integer training sequences."""
    return [[1, 2, 3], [2, 3, 4], [1, 3, 4]]


@pytest.fixture
def order1_chain(int_sequences) -> Chain:
    """Order-1 chain trained on int_sequences."""
    chain = Chain(1)
    for sequence in int_sequences:
        chain.train(sequence)
    return chain


@pytest.fixture
def sample_text() -> str:
    """Multi-sentence sample text."""
    return SAMPLE_TEXT


@pytest.fixture
def text_chain(sample_text, rng) -> TextChain:
    """Order-1 text chain trained on sample_text."""
    return TextChain(1, rng=rng).train_string(sample_text)


@pytest.fixture
def corpus_path(sample_text, tmp_path) -> Path:
    """Temporary text file holding sample_text."""
    file_path = tmp_path / "corpus.txt"
    file_path.write_text(sample_text, encoding="utf-8")
    return file_path

