"""Tests for vitality aggregation, weight redistribution and the trend."""

from __future__ import annotations

from itertools import combinations

import pytest

from healthwallet.domains.health.domain_logic.health_models import (
    COMPONENT_KEYS,
    COMPONENT_WEIGHTS,
    NO_DATA_LABEL,
    DailyMetric,
)
from healthwallet.domains.health.domain_logic.vitality import (
    RawComponent,
    aggregate,
    compute_vitality,
    compute_vitality_trend,
    effective_weights,
)


class TestEffectiveWeights:
    def test_base_weights_sum_to_one(self):
        assert sum(COMPONENT_WEIGHTS.values()) == pytest.approx(1.0)

    def test_every_non_empty_subset_sums_to_one(self):
        for size in range(1, len(COMPONENT_KEYS) + 1):
            for subset in combinations(COMPONENT_KEYS, size):
                weights = effective_weights(subset)
                assert sum(weights.values()) == pytest.approx(1.0)
                for key in COMPONENT_KEYS:
                    if key not in subset:
                        assert weights[key] == 0.0

    def test_redistribution_is_proportional(self):
        weights = effective_weights(["sleep", "consistency"])
        assert weights["sleep"] == pytest.approx(0.75)
        assert weights["consistency"] == pytest.approx(0.25)

    def test_nothing_available(self):
        assert set(effective_weights([]).values()) == {0.0}


class TestComputeVitality:
    def test_full_data_day(self):
        metric = DailyMetric(
            date="2024-03-01", sleep_hours=7.5, hrv_avg_ms=65,
            resting_heart_rate=58, steps=9000,
        )
        result = compute_vitality(metric, 80, 7)

        assert result.score == 97
        assert result.insufficient_data is False
        assert result.components["clinical"].score == 80
        assert result.components["clinical"].weight == 0.15
        assert result.components["sleep"].value == "7.5h"
        assert result.components["recovery"].value == "HRV 65ms / RHR 58"
        assert result.components["activity"].value == "9000 steps"
        assert result.components["consistency"].value == "7-day streak"

    def test_only_sleep_and_empty_streak(self):
        metric = DailyMetric(date="2024-03-01", sleep_hours=8)
        result = compute_vitality(metric, None, 0)

        assert result.score == 75
        assert result.components["sleep"].weight == 0.75
        assert result.components["consistency"].weight == 0.25
        assert result.components["consistency"].score == 0
        assert result.available_components == ["sleep", "consistency"]

    def test_unavailable_components_report_no_data(self):
        result = compute_vitality(None, None, 0)
        for key in ("sleep", "recovery", "activity", "clinical"):
            comp = result.components[key]
            assert comp.available is False
            assert comp.score == 0
            assert comp.weight == 0.0
            assert comp.value == NO_DATA_LABEL

    def test_zero_wellness_means_no_clinical_data(self):
        result = compute_vitality(None, 0, 3)
        assert result.components["clinical"].available is False
        assert result.score == 43

    def test_partial_recovery(self):
        metric = DailyMetric(date="2024-03-01", resting_heart_rate=70)
        result = compute_vitality(metric, None, 0)
        assert result.components["recovery"].score == 65
        assert result.components["recovery"].value == "RHR 70"

    def test_as_dict_shape(self):
        data = compute_vitality(None, 90, 2).as_dict()
        assert set(data) == {"score", "insufficient_data", "components"}
        assert list(data["components"]) == COMPONENT_KEYS


class TestAggregate:
    def test_nothing_available_is_insufficient(self):
        result = aggregate({})
        assert result.score == 0
        assert result.insufficient_data is True

    def test_score_bounded(self):
        raw = {k: RawComponent(score=100, value="x", available=True) for k in COMPONENT_KEYS}
        assert aggregate(raw).score == 100


class TestTrend:
    def test_one_point_per_day_oldest_first(self):
        metrics = {
            "2024-03-01": DailyMetric(date="2024-03-01", sleep_hours=8),
            "2024-03-03": DailyMetric(date="2024-03-03", sleep_hours=6),
        }
        points = compute_vitality_trend(metrics, None, [], "2024-03-03", days=2)

        assert [p.date for p in points] == ["2024-03-01", "2024-03-02", "2024-03-03"]
        assert points[0].score == 75
        # Only the zero streak counts on a day without metrics.
        assert points[1].score == 0
        assert points[2].score == 45

    def test_each_day_uses_its_own_streak(self):
        logged = ["2024-03-01", "2024-03-02", "2024-03-03"]
        points = compute_vitality_trend({}, None, logged, "2024-03-03", days=2)
        assert [p.score for p in points] == [14, 29, 43]

    def test_zero_days_is_just_the_end_date(self):
        points = compute_vitality_trend({}, 80, [], "2024-03-03", days=0)
        assert len(points) == 1

    def test_negative_days_rejected(self):
        with pytest.raises(ValueError):
            compute_vitality_trend({}, None, [], "2024-03-03", days=-1)


class TestScenarios:
    def test_everything_available(self):
        metric = DailyMetric(
            date="2024-01-05", sleep_hours=8, hrv_avg_ms=70,
            resting_heart_rate=55, steps=9000,
        )
        result = compute_vitality(metric, 90, 7)

        assert result.available_components == COMPONENT_KEYS
        assert 85 <= result.score <= 100
        for key in ("sleep", "recovery", "activity", "consistency"):
            assert result.components[key].score == 100

    def test_nothing_but_an_empty_streak(self):
        result = compute_vitality(None, None, 0)

        assert result.score == 0
        assert result.available_components == ["consistency"]
        assert result.components["consistency"].weight == 1.0
        assert result.insufficient_data is False

    def test_identical_inputs_identical_output(self):
        metric = DailyMetric(date="2024-01-05", sleep_hours=6.3, steps=4321)
        assert compute_vitality(metric, 70, 2) == compute_vitality(metric, 70, 2)
