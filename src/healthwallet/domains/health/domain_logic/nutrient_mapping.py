"""Biomarker -> nutrient / food / supplement mapping.

Out-of-range biomarkers are looked up in an ordered static table. Lookup
precedence: an exact (case-insensitive) key match anywhere in the table wins;
otherwise the first entry, in table order, whose key contains the marker name
or is contained in it. Unknown markers simply produce nothing.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import asdict, dataclass, field
from typing import Any

from healthwallet.domains.health.domain_logic.health_models import (
    BiomarkerReading,
    BiomarkerStatus,
)

DIETS = ("omnivore", "vegetarian", "vegan", "keto", "paleo", "pescatarian")


@dataclass(frozen=True)
class FoodRecommendation:
    name: str
    category: str  # protein, vegetable, fruit, grain, fat, dairy, legume
    nutrients: tuple[str, ...]
    why: str
    serving: str
    tags: tuple[str, ...]  # vegetarian, vegan, gluten-free, dairy-free, keto

    def as_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["nutrients"] = list(self.nutrients)
        data["tags"] = list(self.tags)
        return data


@dataclass(frozen=True)
class NutrientNeed:
    nutrient: str
    reason: str
    biomarker: str
    status: str

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class NutrientDirection:
    nutrients: tuple[str, ...]
    foods: tuple[FoodRecommendation, ...]


@dataclass(frozen=True)
class NutrientMapping:
    keys: tuple[str, ...]
    low: NutrientDirection | None = None
    high: NutrientDirection | None = None

    def for_status(self, status: BiomarkerStatus) -> NutrientDirection | None:
        if status == BiomarkerStatus.LOW:
            return self.low
        if status == BiomarkerStatus.HIGH:
            return self.high
        return None


@dataclass
class NutrientAnalysis:
    needs: list[NutrientNeed] = field(default_factory=list)
    foods: list[FoodRecommendation] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {
            "needs": [n.as_dict() for n in self.needs],
            "foods": [f.as_dict() for f in self.foods],
        }


def _food(name, category, nutrients, why, serving, tags) -> FoodRecommendation:
    return FoodRecommendation(name, category, tuple(nutrients), why, serving, tuple(tags))


_GF_DF_KETO = ("gluten-free", "dairy-free", "keto")
_PLANT = ("vegetarian", "vegan", "gluten-free")
_PLANT_KETO = ("vegetarian", "vegan", "gluten-free", "keto")

NUTRIENT_MAP: list[NutrientMapping] = [
    NutrientMapping(
        keys=("vitamin d",),
        low=NutrientDirection(("Vitamin D3", "Calcium"), (
            _food("Salmon", "protein", ["Vitamin D3", "Omega-3"], "One of the richest natural sources of Vitamin D", "150g fillet", _GF_DF_KETO),
            _food("Sardines", "protein", ["Vitamin D3", "Calcium", "Omega-3"], "Excellent Vitamin D plus bone-building calcium", "1 can (120g)", _GF_DF_KETO),
            _food("Egg Yolks", "protein", ["Vitamin D3"], "Each yolk provides ~40 IU of Vitamin D", "2-3 eggs", ("vegetarian", "gluten-free", "keto")),
            _food("Fortified Mushrooms", "vegetable", ["Vitamin D2"], "UV-exposed mushrooms are the best plant source of Vitamin D", "1 cup sliced", _PLANT_KETO),
        )),
    ),
    NutrientMapping(
        keys=("iron",),
        low=NutrientDirection(("Iron", "Vitamin C"), (
            _food("Beef Liver", "protein", ["Iron", "B12", "Folate"], "Highest bioavailable iron source (heme iron)", "100g", _GF_DF_KETO),
            _food("Spinach", "vegetable", ["Iron", "Folate"], "Rich in non-heme iron, pair with Vitamin C for absorption", "2 cups raw", _PLANT_KETO),
            _food("Lentils", "legume", ["Iron", "Folate", "Fiber"], "Plant-based iron powerhouse", "1 cup cooked", _PLANT),
            _food("Dark Chocolate (85%+)", "fat", ["Iron", "Magnesium"], "Surprisingly good iron source", "30g", _PLANT),
        )),
    ),
    NutrientMapping(
        keys=("ferritin",),
        low=NutrientDirection(("Iron", "Vitamin C"), (
            _food("Red Meat", "protein", ["Iron", "B12", "Zinc"], "Most bioavailable form of heme iron to rebuild ferritin stores", "150g", _GF_DF_KETO),
            _food("Pumpkin Seeds", "fat", ["Iron", "Zinc", "Magnesium"], "Excellent plant iron source, great as a snack", "30g (2 tbsp)", _PLANT_KETO),
            _food("Tofu", "protein", ["Iron", "Calcium"], "Good plant-based iron, especially firm/extra-firm", "150g", _PLANT),
        )),
    ),
    NutrientMapping(
        keys=("vitamin b12", "b12"),
        low=NutrientDirection(("Vitamin B12",), (
            _food("Clams", "protein", ["B12", "Iron"], "Highest B12 of any food, 3oz provides 1400% DV", "85g", ("gluten-free", "dairy-free")),
            _food("Nutritional Yeast", "grain", ["B12", "B-vitamins"], "Fortified vegan B12 source with cheesy flavor", "2 tbsp", _PLANT),
            _food("Eggs", "protein", ["B12", "Vitamin D3"], "Easy daily B12 source", "2 eggs", ("vegetarian", "gluten-free", "keto")),
        )),
    ),
    NutrientMapping(
        keys=("folate", "folic acid"),
        low=NutrientDirection(("Folate", "B-vitamins"), (
            _food("Asparagus", "vegetable", ["Folate", "Vitamin K"], "One of the richest vegetable sources of folate", "1 cup cooked", _PLANT_KETO),
            _food("Avocado", "fat", ["Folate", "Potassium"], "Creamy folate-rich superfood", "1 whole", _PLANT_KETO),
            _food("Black Beans", "legume", ["Folate", "Iron", "Fiber"], "Folate-dense legume", "1 cup cooked", _PLANT),
        )),
    ),
    NutrientMapping(
        keys=("magnesium",),
        low=NutrientDirection(("Magnesium",), (
            _food("Almonds", "fat", ["Magnesium", "Vitamin E"], "Top magnesium snack, 80mg per ounce", "30g (23 almonds)", _PLANT_KETO),
            _food("Dark Leafy Greens", "vegetable", ["Magnesium", "Iron", "Folate"], "Swiss chard and spinach are magnesium powerhouses", "2 cups", _PLANT_KETO),
            _food("Banana", "fruit", ["Magnesium", "Potassium"], "Easy magnesium and potassium source", "1 medium", _PLANT),
        )),
    ),
    NutrientMapping(
        keys=("fasting glucose", "glucose"),
        high=NutrientDirection(("Fiber", "Chromium", "Magnesium"), (
            _food("Cinnamon", "fat", ["Chromium"], "May help improve insulin sensitivity", "1 tsp daily", _PLANT_KETO),
            _food("Oats (Steel-Cut)", "grain", ["Fiber", "Magnesium"], "Slow-release carbs help stabilize blood sugar", "1/2 cup dry", ("vegetarian", "vegan")),
            _food("Berries", "fruit", ["Fiber", "Antioxidants"], "Low-glycemic fruit packed with fiber", "1 cup", _PLANT),
            _food("Broccoli", "vegetable", ["Fiber", "Chromium", "Sulforaphane"], "Sulforaphane may reduce blood sugar", "1 cup", _PLANT_KETO),
        )),
    ),
    NutrientMapping(
        keys=("ldl cholesterol", "ldl"),
        high=NutrientDirection(("Fiber", "Omega-3", "Plant Sterols"), (
            _food("Oatmeal", "grain", ["Soluble Fiber"], "Beta-glucan in oats can lower LDL by 5-10%", "1 cup cooked", ("vegetarian", "vegan")),
            _food("Walnuts", "fat", ["Omega-3", "Fiber"], "Heart-healthy omega-3s help reduce LDL", "30g (14 halves)", _PLANT_KETO),
            _food("Avocado", "fat", ["Monounsaturated Fat", "Fiber"], "Replaces saturated fat, can lower LDL", "1/2 avocado", _PLANT_KETO),
            _food("Olive Oil (Extra Virgin)", "fat", ["Monounsaturated Fat", "Polyphenols"], "Mediterranean diet staple for heart health", "2 tbsp", _PLANT_KETO),
        )),
    ),
    NutrientMapping(
        keys=("hdl cholesterol", "hdl"),
        low=NutrientDirection(("Omega-3", "Monounsaturated Fat"), (
            _food("Fatty Fish (Salmon/Mackerel)", "protein", ["Omega-3"], "Omega-3 fatty acids boost HDL levels", "150g", _GF_DF_KETO),
            _food("Olive Oil", "fat", ["Monounsaturated Fat"], "Increases HDL when used as primary cooking oil", "2 tbsp", _PLANT_KETO),
            _food("Coconut Oil", "fat", ["MCT"], "MCTs may help increase HDL", "1 tbsp", _PLANT_KETO),
        )),
    ),
    NutrientMapping(
        keys=("triglycerides",),
        high=NutrientDirection(("Omega-3", "Fiber"), (
            _food("Salmon", "protein", ["Omega-3"], "EPA/DHA directly lower triglycerides", "150g", _GF_DF_KETO),
            _food("Chia Seeds", "fat", ["Omega-3", "Fiber"], "Plant omega-3 (ALA) plus fiber to lower triglycerides", "2 tbsp", _PLANT_KETO),
            _food("Flaxseed", "fat", ["Omega-3", "Fiber"], "Ground flaxseed is one of the best plant sources of ALA omega-3", "2 tbsp ground", _PLANT_KETO),
        )),
    ),
    NutrientMapping(
        keys=("hemoglobin a1c", "hba1c"),
        high=NutrientDirection(("Fiber", "Chromium", "Alpha-Lipoic Acid"), (
            _food("Leafy Greens", "vegetable", ["Fiber", "Magnesium"], "Very low glycemic impact, magnesium helps insulin sensitivity", "3 cups", _PLANT_KETO),
            _food("Sweet Potato", "vegetable", ["Fiber", "Beta-Carotene"], "Lower glycemic than white potato, fiber slows sugar absorption", "1 medium", _PLANT),
            _food("Legumes (Chickpeas/Lentils)", "legume", ["Fiber", "Protein"], "High fiber and protein combo stabilizes blood sugar", "1 cup cooked", _PLANT),
        )),
    ),
    NutrientMapping(
        keys=("zinc",),
        low=NutrientDirection(("Zinc",), (
            _food("Oysters", "protein", ["Zinc", "B12", "Iron"], "Highest zinc food, 6 oysters = 300% DV", "6 medium", ("gluten-free", "dairy-free")),
            _food("Pumpkin Seeds", "fat", ["Zinc", "Magnesium", "Iron"], "Best plant zinc source", "30g", _PLANT_KETO),
            _food("Beef", "protein", ["Zinc", "Iron", "B12"], "Highly bioavailable zinc", "150g", _GF_DF_KETO),
        )),
    ),
    NutrientMapping(
        keys=("omega-3 index",),
        low=NutrientDirection(("EPA", "DHA"), (
            _food("Wild Salmon", "protein", ["EPA", "DHA"], "Richest source of anti-inflammatory omega-3s", "150g", _GF_DF_KETO),
            _food("Sardines", "protein", ["EPA", "DHA", "Calcium"], "Sustainable and affordable omega-3 source", "1 can", _GF_DF_KETO),
            _food("Walnuts", "fat", ["ALA"], "Plant-based omega-3 (converts partially to EPA/DHA)", "30g", _PLANT_KETO),
        )),
    ),
]


def find_mapping(
    name: str,
    table: Sequence[NutrientMapping] = NUTRIENT_MAP,
) -> NutrientMapping | None:
    """Exact key match first, then substring match in table order."""
    needle = name.strip().lower()
    if not needle:
        return None
    for mapping in table:
        if needle in mapping.keys:
            return mapping
    for mapping in table:
        if any(key in needle or needle in key for key in mapping.keys):
            return mapping
    return None


def _format_value(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:g}"


def analyze_nutrient_needs(
    readings: Iterable[BiomarkerReading],
    table: Sequence[NutrientMapping] = NUTRIENT_MAP,
) -> NutrientAnalysis:
    """Nutrient needs and foods for every low/high classified biomarker.

    Needs get one entry per matched nutrient per marker (not deduplicated);
    foods are deduplicated by name, first occurrence wins.
    """
    analysis = NutrientAnalysis()
    seen_foods: set[str] = set()

    for reading in readings:
        if reading.status not in (BiomarkerStatus.LOW, BiomarkerStatus.HIGH):
            continue
        mapping = find_mapping(reading.name, table)
        if mapping is None:
            continue
        direction = mapping.for_status(reading.status)
        if direction is None:
            continue

        status = reading.status.value
        value = f"{_format_value(reading.value)} {reading.unit}".strip()
        for nutrient in direction.nutrients:
            analysis.needs.append(NutrientNeed(
                nutrient=nutrient,
                reason=f"{reading.name} is {status} ({value})",
                biomarker=reading.name,
                status=status,
            ))
        for food in direction.foods:
            if food.name not in seen_foods:
                seen_foods.add(food.name)
                analysis.foods.append(food)

    return analysis


# ---------------------------------------------------------------------------
# Diet / allergy filter
# ---------------------------------------------------------------------------

_DIET_TAGS = {
    "vegetarian": "vegetarian",
    "vegan": "vegan",
    "keto": "keto",
    "paleo": "gluten-free",  # roughly gluten-free + dairy-free
}
_SEAFOOD_WORDS = ("salmon", "fish", "sardine", "clam", "oyster", "mackerel")


def _is_seafood(food: FoodRecommendation) -> bool:
    lowered = food.name.lower()
    return food.category == "protein" and any(w in lowered for w in _SEAFOOD_WORDS)


def filter_by_diet(
    foods: Iterable[FoodRecommendation],
    diet: str = "omnivore",
    allergies: Iterable[str] = (),
) -> list[FoodRecommendation]:
    """Drop foods that clash with the diet or name an allergen.

    Unknown diets are treated as omnivore. Allergies match as
    case-insensitive substrings of the food name.
    """
    diet = (diet or "omnivore").strip().lower()
    filtered = list(foods)

    if diet == "pescatarian":
        filtered = [f for f in filtered if "vegetarian" in f.tags or _is_seafood(f)]
    elif diet in _DIET_TAGS:
        tag = _DIET_TAGS[diet]
        filtered = [f for f in filtered if tag in f.tags]

    allergens = [a.strip().lower() for a in allergies if a and a.strip()]
    if allergens:
        filtered = [
            f for f in filtered
            if not any(a in f.name.lower() for a in allergens)
        ]
    return filtered


# ---------------------------------------------------------------------------
# Meal plan
# ---------------------------------------------------------------------------

DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


def generate_meal_plan(
    foods: Sequence[FoodRecommendation],
    days: int = 7,
) -> list[dict[str, Any]]:
    """Rotate recommended foods through breakfast/lunch/dinner/snack."""
    by_category: dict[str, list[FoodRecommendation]] = {}
    for food in foods:
        by_category.setdefault(food.category, []).append(food)

    def pick(category: str, idx: int) -> list[FoodRecommendation]:
        options = by_category.get(category, [])
        return [options[idx % len(options)]] if options else []

    plan = []
    for i in range(days):
        breakfast = pick("grain", i) + pick("fruit", i) + pick("protein", i + 1)
        if not breakfast:
            breakfast = pick("fat", i)
        lunch = pick("protein", i) + pick("vegetable", i) + pick("legume", i)
        dinner = pick("protein", i + 2) + pick("vegetable", i + 1) + pick("fat", i)
        snack = pick("fat", i + 1) + pick("fruit", i + 1)

        plan.append({
            "day": i + 1,
            "day_name": DAY_NAMES[i % 7],
            "meals": [
                {"type": meal, "foods": [f.name for f in items]}
                for meal, items in (
                    ("breakfast", breakfast),
                    ("lunch", lunch),
                    ("dinner", dinner),
                    ("snack", snack),
                )
            ],
        })
    return plan


# ---------------------------------------------------------------------------
# Supplement protocol
# ---------------------------------------------------------------------------

PRIORITY_ORDER = {"essential": 0, "recommended": 1, "optional": 2}

SUPPLEMENT_PROTOCOLS: dict[tuple[str, BiomarkerStatus], dict[str, str]] = {
    ("vitamin d", BiomarkerStatus.LOW): {
        "name": "Vitamin D3 + K2",
        "dosage": "5000 IU D3 + 100mcg K2 daily with fatty meal",
        "reason": "D3 is better absorbed than D2. K2 ensures calcium goes to bones, not arteries.",
        "priority": "essential",
    },
    ("iron", BiomarkerStatus.LOW): {
        "name": "Iron Bisglycinate",
        "dosage": "25-50mg every other day with vitamin C",
        "reason": "Bisglycinate form is gentle on stomach. Take with 500mg vitamin C for absorption.",
        "priority": "essential",
    },
    ("vitamin b12", BiomarkerStatus.LOW): {
        "name": "Methylcobalamin B12",
        "dosage": "1000-2000mcg sublingual daily",
        "reason": "Methylcobalamin is the active form. Sublingual bypasses digestion issues.",
        "priority": "essential",
    },
    ("magnesium", BiomarkerStatus.LOW): {
        "name": "Magnesium Glycinate",
        "dosage": "300-400mg before bed",
        "reason": "Glycinate form supports sleep and is well-absorbed. Avoid oxide form.",
        "priority": "recommended",
    },
    ("hdl cholesterol", BiomarkerStatus.LOW): {
        "name": "Omega-3 Fish Oil",
        "dosage": "2-3g EPA+DHA daily with food",
        "reason": "High-dose omega-3s raise HDL and lower triglycerides.",
        "priority": "recommended",
    },
    ("homocysteine", BiomarkerStatus.HIGH): {
        "name": "Methylated B-Complex",
        "dosage": "1 capsule daily with food",
        "reason": "Contains methylfolate and methylcobalamin to support homocysteine metabolism.",
        "priority": "essential",
    },
    ("folate", BiomarkerStatus.LOW): {
        "name": "Methylfolate (5-MTHF)",
        "dosage": "400-800mcg daily",
        "reason": "Active form of folate, no conversion needed. Supports DNA synthesis and methylation.",
        "priority": "essential",
    },
    ("zinc", BiomarkerStatus.LOW): {
        "name": "Zinc Picolinate",
        "dosage": "15-30mg daily with food",
        "reason": "Picolinate form is well-absorbed. Supports immune function and hormone production.",
        "priority": "recommended",
    },
    ("calcium", BiomarkerStatus.LOW): {
        "name": "Calcium Citrate + D3",
        "dosage": "500mg calcium + 1000 IU D3, 2x daily",
        "reason": "Citrate form absorbed without food. D3 needed for calcium absorption.",
        "priority": "recommended",
    },
    ("ferritin", BiomarkerStatus.LOW): {
        "name": "Iron Bisglycinate",
        "dosage": "25-50mg every other day with vitamin C",
        "reason": "Low ferritin indicates depleted iron stores. Bisglycinate is gentle on stomach.",
        "priority": "essential",
    },
}


def supplement_protocol(readings: Iterable[BiomarkerReading]) -> list[dict[str, str]]:
    """Supplements for out-of-range markers, essential first (stable order)."""
    protocols = []
    for reading in readings:
        if reading.status not in (BiomarkerStatus.LOW, BiomarkerStatus.HIGH):
            continue
        protocol = SUPPLEMENT_PROTOCOLS.get((reading.key, reading.status))
        if protocol:
            protocols.append({**protocol, "biomarker_link": reading.name})
    protocols.sort(key=lambda p: PRIORITY_ORDER.get(p["priority"], 2))
    return protocols
