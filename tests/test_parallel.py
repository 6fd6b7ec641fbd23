"""
Tests for the order-preserving parallel map.
"""

import pytest

from isocensus.core.parallel import chunked, parallel_map


class TestChunked:
    """Tests for splitting work into contiguous chunks."""

    def test_contiguous_and_complete(self):
        chunks = chunked(list(range(10)), 3)

        assert [list(c) for c in chunks] == [[0, 1, 2, 3], [4, 5, 6], [7, 8, 9]]

    def test_more_chunks_than_items(self):
        assert len(chunked([1, 2], 5)) == 2

    def test_empty(self):
        assert chunked([], 4) == []


class TestParallelMap:
    """Tests for running work items over joblib workers."""

    @pytest.mark.parametrize("n_workers", [1, 2, 4])
    def test_results_in_input_order(self, n_workers):
        items = [-5, 3, -1, 8, -2, 0, 7]
        assert parallel_map(abs, items, n_workers) == [5, 3, 1, 8, 2, 0, 7]

    def test_single_item_runs_in_process(self):
        assert parallel_map(len, ["abc"], n_workers=8) == [3]

    def test_empty(self):
        assert parallel_map(abs, [], n_workers=2) == []
