"""
Generic order-N Markov chains with text generation helpers.
"""
from markov_chain.services.chain import BOUNDARY, Chain, ChainOrderError, ChainStats
from markov_chain.services.text_chain import TextChain, TokenTypeError, join_tokens, split_sentences, tokenize

__version__ = "0.1.0"

__all__ = [
    "BOUNDARY",
    "Chain",
    "ChainOrderError",
    "ChainStats",
    "TextChain",
    "TokenTypeError",
    "join_tokens",
    "split_sentences",
    "tokenize",
]
