import random

import pytest

from sentiment_api.nodes.top_k import select_top_k


def test_keeps_highest_frequencies():
    table = {"a": 5, "b": 1, "c": 9, "d": 3, "e": 7}

    assert select_top_k(table, 3) == {"c": 9, "e": 7, "a": 5}


def test_result_is_ordered_by_descending_frequency():
    table = {"a": 2, "b": 8, "c": 4}

    assert list(select_top_k(table, 3).values()) == [8, 4, 2]


@pytest.mark.parametrize("k", [0, -1])
def test_non_positive_k_is_empty(k):
    assert select_top_k({"a": 1, "b": 2}, k) == {}


def test_empty_table():
    assert select_top_k({}, 20) == {}


@pytest.mark.parametrize("k", [3, 4, 100])
def test_k_at_least_n_returns_everything(k):
    table = {"a": 1, "b": 1, "c": 2}

    assert select_top_k(table, k) == table


def test_ties_return_exactly_k_entries():
    table = {w: 1 for w in "abcdefgh"}

    result = select_top_k(table, 3)

    assert len(result) == 3
    assert set(result) <= set(table)


def test_random_tables_keep_the_dominant_entries():
    rng = random.Random(1234)
    for _ in range(200):
        n = rng.randint(1, 60)
        table = {f"w{i}": rng.randint(1, 10) for i in range(n)}
        k = rng.randint(0, n)

        result = select_top_k(table, k)

        assert len(result) == k
        assert all(table[w] == f for w, f in result.items())
        if result:
            floor = min(result.values())
            excluded = [f for w, f in table.items() if w not in result]
            assert all(f <= floor for f in excluded)


def test_does_not_mutate_input():
    table = {"a": 3, "b": 1}
    select_top_k(table, 1)
    assert table == {"a": 3, "b": 1}
