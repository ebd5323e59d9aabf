"""Tests for score conversion and deterministic ranking."""

import numpy as np

from clip_search.scoring import rank_scores, to_percent


class TestToPercent:
    """Tests for cosine-to-percentage conversion."""

    def test_identical(self):
        assert to_percent(1.0) == 100.0

    def test_orthogonal(self):
        assert to_percent(0.0) == 0.0

    def test_opposite(self):
        assert to_percent(-1.0) == -100.0

    def test_rounds_to_one_decimal(self):
        assert to_percent(0.12345) == 12.3
        assert to_percent(np.float32(0.6000977)) == 60.0

    def test_non_finite_is_none(self):
        assert to_percent(float("nan")) is None
        assert to_percent(float("inf")) is None

    def test_returns_plain_float(self):
        assert type(to_percent(np.float32(0.5))) is float


class TestRankScores:
    """Tests for result ranking."""

    def test_ranks_by_score_descending(self):
        order = rank_scores(np.array([0.5, 0.8, 0.3]))
        assert list(order) == [1, 0, 2]

    def test_tiebreak_by_index(self):
        order = rank_scores(np.array([0.2, 0.9, 0.2, 0.9, 0.2]))
        assert list(order) == [1, 3, 0, 2, 4]

    def test_non_finite_last(self):
        order = rank_scores(np.array([np.nan, -0.5, np.inf, 0.1]))
        assert list(order) == [3, 1, 0, 2]

    def test_negative_scores(self):
        order = rank_scores(np.array([-0.9, -0.1, -0.5]))
        assert list(order) == [1, 2, 0]

    def test_empty(self):
        assert len(rank_scores(np.array([]))) == 0
