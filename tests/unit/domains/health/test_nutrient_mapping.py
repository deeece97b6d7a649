"""Tests for biomarker -> nutrient, food and supplement mapping."""

from __future__ import annotations

from healthwallet.domains.health.domain_logic.biomarker_classifier import decode_biomarkers
from healthwallet.domains.health.domain_logic.nutrient_mapping import (
    NUTRIENT_MAP,
    NutrientMapping,
    analyze_nutrient_needs,
    filter_by_diet,
    find_mapping,
    generate_meal_plan,
    supplement_protocol,
)


def _panel(*markers: tuple) -> list:
    readings, _ = decode_biomarkers([
        {"name": n, "value": v, "unit": u, "reference_range": {"min": lo, "max": hi}}
        for n, v, u, lo, hi in markers
    ])
    return readings


VITAMIN_D_LOW = ("Vitamin D", 18, "ng/mL", 30, 100)
IRON_LOW = ("Iron", 50, "ug/dL", 60, 170)
GLUCOSE_OK = ("Fasting Glucose", 90, "mg/dL", 70, 100)


class TestFindMapping:
    def test_exact_key_match(self):
        assert find_mapping("HDL").keys == ("hdl cholesterol", "hdl")
        assert find_mapping("b12").keys == ("vitamin b12", "b12")

    def test_substring_match(self):
        assert find_mapping("Serum Ferritin").keys == ("ferritin",)
        assert find_mapping("Iron Saturation").keys == ("iron",)

    def test_exact_match_beats_earlier_substring(self):
        table = [NutrientMapping(keys=("vitamin b12",)), NutrientMapping(keys=("b12",))]
        assert find_mapping("B12", table) is table[1]
        assert find_mapping("Vitamin B12 Serum", table) is table[0]

    def test_unknown_marker(self):
        assert find_mapping("Total Cholesterol") is None
        assert find_mapping("Mystery Marker") is None
        assert find_mapping("  ") is None

    def test_every_entry_has_a_direction(self):
        for mapping in NUTRIENT_MAP:
            assert mapping.low is not None or mapping.high is not None


class TestAnalyzeNutrientNeeds:
    def test_needs_and_foods_for_low_markers(self):
        analysis = analyze_nutrient_needs(_panel(VITAMIN_D_LOW, IRON_LOW, GLUCOSE_OK))

        assert [n.nutrient for n in analysis.needs] == ["Vitamin D3", "Calcium", "Iron", "Vitamin C"]
        assert analysis.needs[0].reason == "Vitamin D is low (18 ng/mL)"
        assert analysis.needs[0].biomarker == "Vitamin D"
        assert analysis.needs[0].status == "low"
        assert [f.name for f in analysis.foods][:2] == ["Salmon", "Sardines"]
        assert "Beef Liver" in [f.name for f in analysis.foods]

    def test_foods_deduplicated_by_name(self):
        analysis = analyze_nutrient_needs(_panel(
            ("Ferritin", 12, "ng/mL", 20, 200),
            ("Zinc", 50, "ug/dL", 60, 120),
        ))
        names = [f.name for f in analysis.foods]
        assert names.count("Pumpkin Seeds") == 1

    def test_direction_without_mapping_yields_nothing(self):
        # High iron has no entry; "Hemoglobin" lands on the HbA1c row which has no low side.
        analysis = analyze_nutrient_needs(_panel(
            ("Iron", 250, "ug/dL", 60, 170),
            ("Hemoglobin", 10, "g/dL", 12, 17),
        ))
        assert analysis.needs == []
        assert analysis.foods == []

    def test_optimal_panel(self):
        assert analyze_nutrient_needs(_panel(GLUCOSE_OK)).as_dict() == {"needs": [], "foods": []}


class TestFilterByDiet:
    def _foods(self):
        return analyze_nutrient_needs(_panel(VITAMIN_D_LOW)).foods

    def test_omnivore_keeps_everything(self):
        assert len(filter_by_diet(self._foods(), "omnivore")) == 4

    def test_vegan(self):
        assert [f.name for f in filter_by_diet(self._foods(), "vegan")] == ["Fortified Mushrooms"]

    def test_vegetarian(self):
        names = [f.name for f in filter_by_diet(self._foods(), "Vegetarian")]
        assert names == ["Egg Yolks", "Fortified Mushrooms"]

    def test_pescatarian_keeps_seafood(self):
        names = [f.name for f in filter_by_diet(self._foods(), "pescatarian")]
        assert names == ["Salmon", "Sardines", "Egg Yolks", "Fortified Mushrooms"]

    def test_unknown_diet_is_omnivore(self):
        assert len(filter_by_diet(self._foods(), "carnivore")) == 4

    def test_allergies_substring_case_insensitive(self):
        names = [f.name for f in filter_by_diet(self._foods(), "omnivore", ["SALMON", "egg"])]
        assert names == ["Sardines", "Fortified Mushrooms"]


class TestMealPlan:
    def test_one_entry_per_day_with_four_meals(self):
        foods = analyze_nutrient_needs(_panel(VITAMIN_D_LOW, IRON_LOW)).foods
        plan = generate_meal_plan(foods, days=3)

        assert [d["day"] for d in plan] == [1, 2, 3]
        assert [d["day_name"] for d in plan] == ["Monday", "Tuesday", "Wednesday"]
        for day in plan:
            assert [m["type"] for m in day["meals"]] == ["breakfast", "lunch", "dinner", "snack"]

    def test_day_names_wrap_after_a_week(self):
        plan = generate_meal_plan([], days=8)
        assert plan[7]["day_name"] == "Monday"

    def test_no_days(self):
        assert generate_meal_plan([], days=0) == []


class TestSupplementProtocol:
    def test_essential_first_and_linked_to_marker(self):
        readings = _panel(
            ("Magnesium", 1.5, "mg/dL", 1.7, 2.2),
            VITAMIN_D_LOW,
            IRON_LOW,
        )
        protocol = supplement_protocol(readings)

        assert [p["name"] for p in protocol] == [
            "Vitamin D3 + K2", "Iron Bisglycinate", "Magnesium Glycinate",
        ]
        assert protocol[0]["biomarker_link"] == "Vitamin D"

    def test_optimal_and_unmapped_markers_ignored(self):
        assert supplement_protocol(_panel(GLUCOSE_OK, ("Total Cholesterol", 240, "mg/dL", 125, 200))) == []
