"""
Tests for the generic Markov chain.
"""
import pickle
import random

import pytest

from markov_chain.services.chain import (
    BOUNDARY,
    Boundary,
    Chain,
    ChainOrderError,
    ChainStats,
)


def assert_walk_observed(chain, sequence):
    """Every transition along a generated sequence must have positive weight."""
    order = chain.order
    for i in range(len(sequence) - order):
        node = tuple(sequence[i:i + order])
        assert chain.get_link(node).get(sequence[i + order], 0) > 0


def copy_of(chain):
    return Chain(chain.order).merge(chain)


class TestBoundary:
    """Test suite for the boundary marker."""

    def test_singleton(self):
        """Test Boundary() always returns the shared marker."""
        assert Boundary() is BOUNDARY

    def test_repr(self):
        """Test marker repr."""
        assert repr(BOUNDARY) == "BOUNDARY"

    def test_survives_pickle(self):
        """Test unpickling yields the same singleton."""
        assert pickle.loads(pickle.dumps(BOUNDARY)) is BOUNDARY

    def test_distinct_from_none(self):
        """Test None is an ordinary token, not the marker."""
        assert BOUNDARY is not None
        assert BOUNDARY != None  # noqa: E711


class TestChainStats:
    """Test suite for ChainStats dataclass."""

    def test_initialization(self):
        """Test stats initialize with defaults."""
        stats = ChainStats()

        assert stats.order == 0
        assert stats.node_count == 0
        assert stats.link_count == 0
        assert stats.total_weight == 0
        assert stats.vocab_size == 0


class TestChainInit:
    """Test suite for chain construction."""

    def test_default_order(self):
        """Test chain defaults to order 1 and starts empty."""
        chain = Chain()

        assert chain.order == 1
        assert chain.is_empty()
        assert len(chain) == 0

    def test_custom_order(self):
        """Test chain with a custom order."""
        chain = Chain(4)

        assert chain.order == 4

    @pytest.mark.parametrize("order", [0, -1, 1.5, True, "2"])
    def test_invalid_order(self, order):
        """Test non-positive or non-integer orders are rejected."""
        with pytest.raises(ValueError):
            Chain(order)

    def test_repr(self):
        """Test repr mentions order and node count."""
        assert repr(Chain(2)) == "Chain(order=2, nodes=0)"


class TestChainTrain:
    """Test suite for Chain.train."""

    def test_empty_sequence_is_noop(self):
        """Test training on an empty sequence changes nothing."""
        chain = Chain(1)
        chain.train([])

        assert chain.is_empty()

    def test_returns_self(self):
        """Test train returns the chain for chaining."""
        chain = Chain(1)

        assert chain.train([1, 2]).train([3]) is chain

    def test_order1_training(self, order1_chain):
        """Test order-1 weights on three short sequences."""
        assert dict(order1_chain.get_link([1])) == {2: 1, 3: 1}
        assert dict(order1_chain.get_link([2])) == {3: 2}
        assert dict(order1_chain.get_link([3])) == {BOUNDARY: 1, 4: 2}
        assert dict(order1_chain.get_link([4])) == {BOUNDARY: 2}

    def test_order1_start_node(self, order1_chain):
        """Test the all-boundary node records each sequence's first token."""
        assert dict(order1_chain.get_link([BOUNDARY])) == {1: 2, 2: 1}

    def test_order2_training(self, int_sequences):
        """Test order-2 weights."""
        chain = Chain(2)
        for sequence in int_sequences:
            chain.train(sequence)

        assert dict(chain.get_link([1, 2])) == {3: 1}
        assert dict(chain.get_link([2, 3])) == {BOUNDARY: 1, 4: 1}
        assert dict(chain.get_link([3, 4])) == {BOUNDARY: 2}
        assert dict(chain.get_link([1, 3])) == {4: 1}
        assert dict(chain.get_link([BOUNDARY, BOUNDARY])) == {1: 2, 2: 1}
        assert dict(chain.get_link([BOUNDARY, 1])) == {2: 1, 3: 1}

    def test_order3_training(self):
        """Test order-3 weights on a repeating sequence."""
        chain = Chain(3)
        chain.train([1, 2, 3, 4, 1, 2, 3, 4])

        assert dict(chain.get_link([1, 2, 3])) == {4: 2}
        assert dict(chain.get_link([2, 3, 4])) == {1: 1, BOUNDARY: 1}
        assert dict(chain.get_link([3, 4, 1])) == {2: 1}
        assert dict(chain.get_link([4, 1, 2])) == {3: 1}

    def test_short_sequence_is_padded(self):
        """Test a sequence shorter than the order still yields full-width nodes."""
        chain = Chain(3)
        chain.train(["a"])

        assert len(chain) == 4
        assert dict(chain.get_link([BOUNDARY, BOUNDARY, BOUNDARY])) == {"a": 1}
        assert dict(chain.get_link([BOUNDARY, BOUNDARY, "a"])) == {BOUNDARY: 1}
        assert dict(chain.get_link([BOUNDARY, "a", BOUNDARY])) == {BOUNDARY: 1}
        assert dict(chain.get_link(["a", BOUNDARY, BOUNDARY])) == {BOUNDARY: 1}
        for node in chain.nodes():
            assert len(node) == 3

    def test_observation_count(self):
        """Test a sequence of length L records L + 1 transitions."""
        chain = Chain(2)
        chain.train([1, 2, 3, 4])

        assert chain.get_stats().total_weight == 5

    def test_accepts_iterables(self):
        """Test any iterable of tokens can be trained."""
        chain = Chain(1)
        chain.train(iter("abc"))

        assert dict(chain.get_link(["a"])) == {"b": 1}

    def test_none_is_a_token(self):
        """Test None can be trained as a regular token."""
        chain = Chain(1)
        chain.train([None, 1])

        assert dict(chain.get_link([None])) == {1: 1}
        assert dict(chain.get_link([BOUNDARY])) == {None: 1}


class TestChainMerge:
    """Test suite for Chain.merge."""

    def test_sums_weights(self, order1_chain):
        """Test weights are summed per (node, next) pair."""
        other = Chain(1).train([1, 2]).train([3, 4])
        order1_chain.merge(other)

        assert dict(order1_chain.get_link([1])) == {2: 2, 3: 1}
        assert dict(order1_chain.get_link([2])) == {3: 2, BOUNDARY: 1}
        assert dict(order1_chain.get_link([3])) == {BOUNDARY: 1, 4: 3}

    def test_returns_self(self, order1_chain):
        """Test merge returns the chain."""
        chain = Chain(1)

        assert chain.merge(order1_chain) is chain

    def test_empty_adopts_copy(self, order1_chain):
        """Test merging into an empty chain copies the other table."""
        chain = Chain(1)
        chain.merge(order1_chain)

        assert chain == order1_chain

        chain.train([1, 2])
        assert dict(order1_chain.get_link([1])) == {2: 1, 3: 1}

    def test_empty_path_matches_summed_path(self, order1_chain):
        """Test adopting into an empty chain equals summing field by field."""
        other = Chain(1).train([4, 1])

        adopted_first = Chain(1).merge(order1_chain).merge(other)
        summed_first = Chain(1).merge(other).merge(order1_chain)

        assert adopted_first == summed_first

    def test_associative(self, order1_chain):
        """Test merge grouping does not change final weights."""
        a = order1_chain
        b = Chain(1).train([2, 2, 5])
        c = Chain(1).train([5, 1]).train([3])

        left = copy_of(a).merge(b).merge(c)
        right = copy_of(a).merge(copy_of(b).merge(c))
        shuffled = copy_of(c).merge(a).merge(b)

        assert left == right == shuffled

    def test_order_mismatch_fails(self, order1_chain):
        """Test chains of different order cannot be merged."""
        before = copy_of(order1_chain)

        with pytest.raises(ChainOrderError):
            order1_chain.merge(Chain(2).train([1, 2, 3]))

        assert order1_chain == before

    def test_order_mismatch_is_value_error(self):
        """Test ChainOrderError is a ValueError."""
        with pytest.raises(ValueError):
            Chain(1).merge(Chain(3))

    def test_repeated_merge_accumulates(self, order1_chain):
        """Test merging the same source twice counts it twice."""
        chain = Chain(1).train([9])
        chain.merge(order1_chain).merge(order1_chain)

        assert dict(chain.get_link([2])) == {3: 4}

    def test_merge_with_self_doubles(self, order1_chain):
        """Test a chain merged into itself doubles every weight."""
        order1_chain.merge(order1_chain)

        assert dict(order1_chain.get_link([3])) == {BOUNDARY: 2, 4: 4}


class TestChainGenerate:
    """Test suite for Chain.generate / generate_limit."""

    def test_empty_chain(self):
        """Test generating from an empty chain returns an empty list."""
        assert Chain(2).generate() == []
        assert Chain(2).generate_limit(5) == []

    def test_results_are_training_suffixes(self):
        """Test a single-sequence chain only yields suffixes of it."""
        chain = Chain(1, rng=random.Random(7)).train([1, 2, 3])

        for _ in range(50):
            assert chain.generate() in ([], [1, 2, 3], [2, 3], [3])

    def test_boundary_start_node_returns_real_slots(self):
        """Test a start node holding boundary slots is the whole output."""
        chain = Chain(3, rng=random.Random(3)).train(["a"])

        for _ in range(30):
            assert chain.generate() in ([], ["a"])

    def test_limit(self):
        """Test generation stops once the limit is reached."""
        chain = Chain(1, rng=random.Random(11))
        chain.train(list(range(20))).train(list(range(20)))

        for _ in range(30):
            assert len(chain.generate_limit(3)) <= 3

    def test_non_positive_limit_is_unbounded(self):
        """Test max_len <= 0 runs until the boundary."""
        chain = Chain(2, rng=random.Random(5)).train(list(range(30)))
        results = [chain.generate_limit(0) for _ in range(40)]

        for result in results:
            # [] and [0] come from start nodes holding boundary slots
            if result not in ([], [0]):
                assert result == list(range(result[0], 30))

    @pytest.mark.parametrize("order", [1, 2, 3])
    def test_walk_follows_observed_transitions(self, order):
        """Test every generated transition was seen during training."""
        sequences = [
            [1, 2, 3, 2, 1, 2, 3, 4, 3, 2, 1],
            [5, 4, 3, 2, 1],
            [1, 3, 5, 3, 1],
        ]
        chain = Chain(order, rng=random.Random(order))
        for sequence in sequences:
            chain.train(sequence)

        for sequence in sequences:
            for _ in range(20):
                assert_walk_observed(chain, chain.generate_limit(len(sequence) + 1))

    def test_weighted_choice_is_proportional(self):
        """Test candidates are drawn in proportion to their weights."""
        chain = Chain(1, rng=random.Random(42))
        for _ in range(3):
            chain.train(["a", "b"])
        chain.train(["a", "c"])

        draws = [chain._choose_random_link(("a",)) for _ in range(4000)]

        assert set(draws) == {"b", "c"}
        assert draws.count("b") / len(draws) == pytest.approx(0.75, abs=0.04)

    def test_unknown_node_yields_boundary(self):
        """Test sampling from an unknown node stops generation."""
        chain = Chain(1).train([1])

        assert chain._choose_random_link((99,)) is BOUNDARY


class TestChainAccessors:
    """Test suite for read-only views and stats."""

    def test_transitions_read_only(self, order1_chain):
        """Test the transition table view cannot be mutated."""
        with pytest.raises(TypeError):
            order1_chain.transitions[(9,)] = {1: 1}

    def test_get_link_read_only(self, order1_chain):
        """Test link views cannot be mutated."""
        link = order1_chain.get_link([1])

        with pytest.raises(TypeError):
            link[2] = 100

    def test_get_link_unknown_node(self, order1_chain):
        """Test unknown nodes have an empty link."""
        assert dict(order1_chain.get_link([42])) == {}

    def test_nodes(self, order1_chain):
        """Test nodes lists every key."""
        assert set(order1_chain.nodes()) == {(BOUNDARY,), (1,), (2,), (3,), (4,)}

    def test_get_stats(self, order1_chain):
        """Test stats summarize the table."""
        stats = order1_chain.get_stats()

        assert stats.order == 1
        assert stats.node_count == 5
        assert stats.link_count == 8
        assert stats.total_weight == 12
        assert stats.vocab_size == 4

    def test_equality(self, int_sequences):
        """Test chains compare by order and table."""
        a = Chain(1)
        b = Chain(1)
        for sequence in int_sequences:
            a.train(sequence)
            b.train(sequence)

        assert a == b
        assert a != Chain(1)
        assert Chain(1) != Chain(2)
        assert a != "chain"
