"""
Tests for Cut and StageCuts.

Tests covering:
1. Cut values and identity
2. Local append and index diffs
3. Merge as a deterministic set union
"""

import itertools

import pytest
import numpy as np


class TestCut:
    """Test the Cut value type."""

    def test_value(self):
        """intercept + coefficients' x."""
        from stochdual.cuts import Cut

        cut = Cut.from_arrays(10.0, np.array([-1.0, 0.5]))
        assert cut.value([2.0, 2.0]) == 9.0
        assert cut.n_states == 2

    def test_exact_equality(self):
        """Cuts are equal only when bit-identical."""
        from stochdual.cuts import Cut

        a = Cut(0.1 + 0.2, (1.0,))
        b = Cut(0.3, (1.0,))
        assert a != b
        assert Cut(0.3, (1.0,)) == b
        assert len({a, b, Cut(0.3, (1.0,))}) == 2

    def test_from_arrays_converts_numpy_scalars(self):
        """numpy inputs become plain floats."""
        from stochdual.cuts import Cut

        cut = Cut.from_arrays(np.float32(2.0), np.array([[1, 2]]))
        assert isinstance(cut.intercept, float)
        assert cut.coefficients == (1.0, 2.0)


class TestStageCutsAppend:
    """Test the local append path."""

    def test_append_keeps_duplicates(self):
        """append does not deduplicate."""
        from stochdual.cuts import Cut, StageCuts

        sc = StageCuts(1)
        sc.append(Cut(1.0, (2.0,)), (0.5,))
        sc.append(Cut(1.0, (2.0,)), (0.5,))

        assert sc.n_cuts == 2
        assert sc.n_sample_points == 2
        assert sc.sample_points[0] == (0.5,)

    def test_append_without_sample_point(self):
        """The sample point is optional."""
        from stochdual.cuts import Cut, StageCuts

        sc = StageCuts(1)
        sc.append(Cut(1.0, (2.0,)))
        assert sc.n_cuts == 1
        assert sc.n_sample_points == 0

    def test_wrong_dimension(self):
        """Cuts and points must match the state dimension."""
        from stochdual.cuts import Cut, StageCuts
        from stochdual.exceptions import DimensionError

        sc = StageCuts(2)
        with pytest.raises(DimensionError):
            sc.append(Cut(1.0, (2.0,)))
        with pytest.raises(DimensionError):
            sc.add_sample_point([1.0])

    def test_delta_since(self):
        """delta_since returns only what was appended after the sizes."""
        from stochdual.cuts import Cut, StageCuts

        sc = StageCuts(1, cuts=[Cut(0.0, (1.0,))], sample_points=[(0.0,)])
        sizes = (sc.n_cuts, sc.n_sample_points)
        sc.append(Cut(2.0, (3.0,)), (4.0,))

        points, cuts = sc.delta_since(*sizes)
        assert points == [(4.0,)]
        assert cuts == [Cut(2.0, (3.0,))]
        assert sc.delta_since(sc.n_cuts, sc.n_sample_points) == ([], [])

    def test_append_invalidates_dominance(self):
        """Dominance counts are stale after an append."""
        from stochdual.cuts import Cut, StageCuts, recompute_dominance

        sc = StageCuts(1, cuts=[Cut(0.0, (1.0,))], sample_points=[(1.0,)])
        recompute_dominance("min", sc)
        assert sc.dominance is not None

        sc.append(Cut(5.0, (0.0,)))
        assert sc.dominance is None


class TestStageCutsMerge:
    """Test merge."""

    @staticmethod
    def _deltas():
        from stochdual.cuts import Cut

        return [
            ([(1.0,), (2.0,)], [Cut(1.0, (0.5,)), Cut(3.0, (-1.0,))]),
            ([(2.0,)], [Cut(3.0, (-1.0,)), Cut(0.0, (2.0,))]),
            ([(0.5,)], [Cut(-1.0, (4.0,))]),
        ]

    def test_union_with_dedup(self):
        """Duplicate cuts and points across workers are merged once."""
        from stochdual.cuts import StageCuts

        sc = StageCuts(1)
        assert sc.merge(self._deltas())

        assert sc.n_cuts == 4
        assert sc.n_sample_points == 3
        assert len(set(sc.cuts)) == 4

    def test_existing_items_keep_position(self):
        """Items already in the store are not moved or duplicated."""
        from stochdual.cuts import Cut, StageCuts

        sc = StageCuts(1, cuts=[Cut(3.0, (-1.0,))], sample_points=[(2.0,)])
        sc.merge(self._deltas())

        assert sc.cuts[0] == Cut(3.0, (-1.0,))
        assert sc.sample_points[0] == (2.0,)
        assert sc.n_cuts == 4

    def test_idempotent(self):
        """Merging the same deltas twice changes nothing."""
        from stochdual.cuts import StageCuts

        sc = StageCuts(1)
        sc.merge(self._deltas())
        before = (list(sc.cuts), list(sc.sample_points))

        assert not sc.merge(self._deltas())
        assert (sc.cuts, sc.sample_points) == before

    def test_order_independent(self):
        """Every arrival order of worker deltas gives the same store."""
        from stochdual.cuts import Cut, StageCuts

        stores = []
        for perm in itertools.permutations(self._deltas()):
            sc = StageCuts(1, cuts=[Cut(9.0, (0.0,))], sample_points=[(7.0,)])
            sc.merge(perm)
            stores.append(sc)

        assert all(store == stores[0] for store in stores)

    def test_empty_deltas(self):
        """Empty deltas leave the store unchanged."""
        from stochdual.cuts import Cut, StageCuts

        sc = StageCuts(1, cuts=[Cut(1.0, (1.0,))])
        assert not sc.merge([([], []), ([], [])])
        assert sc.n_cuts == 1

    def test_merge_rejects_wrong_dimension(self):
        """Worker cuts must match the state dimension."""
        from stochdual.cuts import Cut, StageCuts
        from stochdual.exceptions import DimensionError

        sc = StageCuts(1)
        with pytest.raises(DimensionError):
            sc.merge([([], [Cut(1.0, (1.0, 2.0))])])

    def test_failed_merge_leaves_store_unchanged(self):
        """A bad item anywhere in the deltas means nothing is merged."""
        from stochdual.cuts import Cut, StageCuts
        from stochdual.exceptions import DimensionError

        sc = StageCuts(1)
        sc.append(Cut(0.0, (1.0,)), (0.0,))
        sc.dominance = np.array([1])

        with pytest.raises(DimensionError):
            sc.merge([([(0.5,), (1.0, 2.0)], [Cut(1.0, (2.0,))])])
        assert sc.sample_points == [(0.0,)]
        assert sc.cuts == [Cut(0.0, (1.0,))]
        assert sc.dominance is not None

        with pytest.raises(DimensionError):
            sc.merge([([(0.5,)], [Cut(1.0, (2.0,))]), ([], [Cut(1.0, (1.0, 2.0))])])
        assert sc.sample_points == [(0.0,)]
        assert sc.n_cuts == 1

    def test_coefficient_matrix(self):
        """Slopes as an (n_cuts, n_states) array."""
        from stochdual.cuts import Cut, StageCuts

        assert StageCuts(3).coefficient_matrix().shape == (0, 3)
        sc = StageCuts(2, cuts=[Cut(1.0, (1.0, 2.0)), Cut(2.0, (3.0, 4.0))])
        np.testing.assert_array_equal(sc.coefficient_matrix(), [[1.0, 2.0], [3.0, 4.0]])
        np.testing.assert_array_equal(sc.intercepts(), [1.0, 2.0])
