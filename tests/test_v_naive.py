import numpy as np

import v_naive


class TestTreeComparison:
    def test_consistency(self, tmp_path):
        tracker = v_naive.TreeComparison(200, [8, 33], 7, tmp_path)
        assert tracker.run("consistency") == 0

    def test_query_timing(self, tmp_path):
        sizes = [16, 64]
        tracker = v_naive.TreeComparison(50, sizes, 7, tmp_path)
        results = tracker.run("query_timing")
        assert results.shape == (2, len(sizes))
        assert np.all(results > 0)
        assert (tmp_path / "query_timing.png").exists()

    def test_random_ops_in_range(self, tmp_path):
        tracker = v_naive.TreeComparison(100, [10], 3, tmp_path)
        for i, v, a, b in tracker.random_ops(10):
            assert 0 <= i < 10
            assert 0 <= a < b <= 10
