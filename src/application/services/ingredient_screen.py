"""
application.services.ingredient_screen - Rule-based disallowed-ingredient detection.

Expands the profile's allergens and restrictions into concrete ingredient
terms and scans the recipe's ingredient list for them.

Matching works on words, not substrings of the line: a term matches any word
that contains it, so compounds ("catfish", "cornbread", "meatballs") and
plurals ("anchovies") count. Words that merely look like a term
("eggplant", "butternut", "graham") are listed explicitly in _SAFE_WORDS.

A mention is neutralised only by a qualifier that can actually replace that
term ("almond milk", "peanut butter", "rice flour", "vegan anything") or by a
"-free" suffix ("egg-free"). "coconut shrimp" and "rice wine" still count.

Names that are not in the maps match themselves, after stripping "no " /
"without " prefixes and a "-free" suffix ("no pork" -> "pork").
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Iterable, Optional

from domain.models import RecipeData, SafetyProfile


# ---------------------------------------------------------------------------
# Allergen / restriction expansion maps
# ---------------------------------------------------------------------------

_MEAT = [
    "chicken", "beef", "pork", "lamb", "meat", "turkey", "bacon", "ham",
    "sausage", "prosciutto", "salami", "pepperoni", "duck", "veal",
    "venison", "chorizo", "lard", "burger", "steak", "mutton",
]
_FISH = [
    "fish", "salmon", "tuna", "cod", "anchovy", "sardine", "tilapia",
    "mackerel", "trout", "halibut", "haddock", "bonito", "fish sauce",
]
_SHELLFISH = [
    "shellfish", "shrimp", "prawn", "crab", "lobster", "crayfish", "crawfish",
    "scallop", "clam", "mussel", "oyster", "squid", "calamari", "octopus",
]
_DAIRY = [
    "milk", "cheese", "butter", "cream", "yogurt", "whey", "casein", "ghee",
    "ice cream", "buttermilk", "parmesan", "mozzarella", "cheddar", "ricotta",
]
_EGG = ["egg", "egg yolk", "egg white", "mayonnaise", "meringue"]
_GLUTEN = [
    "wheat", "flour", "bread", "pasta", "barley", "rye", "couscous",
    "semolina", "bulgur", "farro", "spelt", "noodle", "breadcrumb",
    "panko", "soy sauce",
]
_TREE_NUTS = [
    "almond", "walnut", "pecan", "cashew", "pistachio", "hazelnut",
    "macadamia", "pine nut",
]

ALLERGEN_INGREDIENT_MAP: dict[str, list[str]] = {
    "shellfish": _SHELLFISH,
    "crustacean": ["shrimp", "prawn", "crab", "lobster", "crayfish", "crawfish"],
    "fish": _FISH,
    "dairy": _DAIRY,
    "milk": _DAIRY,
    "lactose": _DAIRY,
    "egg": _EGG,
    "eggs": _EGG,
    "gluten": _GLUTEN,
    "wheat": ["wheat", "flour", "bread", "pasta", "couscous", "semolina", "bulgur", "breadcrumb", "panko"],
    "peanut": ["peanut", "peanut butter", "peanut oil"],
    "peanuts": ["peanut", "peanut butter", "peanut oil"],
    "tree nut": _TREE_NUTS,
    "tree nuts": _TREE_NUTS,
    "nuts": _TREE_NUTS + ["peanut"],
    "soy": ["soy", "soy sauce", "tofu", "tempeh", "edamame", "miso"],
    "sesame": ["sesame", "sesame oil", "tahini"],
}

RESTRICTION_INGREDIENT_MAP: dict[str, list[str]] = {
    "vegetarian": _MEAT + _FISH + _SHELLFISH + ["gelatin"],
    "vegan": _MEAT + _FISH + _SHELLFISH + _DAIRY + _EGG + ["honey", "gelatin"],
    "pescatarian": _MEAT,
    "gluten-free": _GLUTEN,
    "dairy-free": _DAIRY,
    "lactose-free": _DAIRY,
    "halal": ["pork", "bacon", "ham", "prosciutto", "lard", "wine", "beer"],
    "kosher": ["pork", "bacon", "ham", "prosciutto", "lard"] + _SHELLFISH,
}


# ---------------------------------------------------------------------------
# Qualifiers: which terms each one turns into a substitute
# ---------------------------------------------------------------------------

def _qualifier_table(
    groups: Iterable[tuple[Iterable[str], Optional[Iterable[str]]]],
) -> dict[str, Optional[frozenset[str]]]:
    """Merge (qualifiers, terms) groups. ``None`` terms means any term."""
    table: dict[str, Optional[frozenset[str]]] = {}
    for qualifiers, terms in groups:
        for qualifier in qualifiers:
            if terms is None or qualifier in table and table[qualifier] is None:
                table[qualifier] = None
            else:
                table[qualifier] = (table.get(qualifier) or frozenset()) | frozenset(terms)
    return table


NEUTRALISING_QUALIFIERS: dict[str, Optional[frozenset[str]]] = _qualifier_table([
    (("plant-based", "plant based", "vegan"), None),
    (("dairy-free", "dairy free", "non-dairy", "nondairy"), _DAIRY),
    (("gluten-free", "gluten free"), _GLUTEN),
    (("egg-free", "egg free", "eggless"), _EGG),
    (("mock", "meatless", "meat-free", "vegetarian", "veggie"), _MEAT),
    (
        ("almond", "oat", "soy", "coconut", "rice", "cashew", "hemp", "flax"),
        ("milk", "cream", "butter", "yogurt", "cheese", "ice cream"),
    ),
    (("peanut", "nut", "cocoa", "apple", "sunflower", "seed", "almond", "cashew"), ("butter",)),
    (
        ("rice", "chickpea", "almond", "coconut", "corn", "oat", "buckwheat", "tapioca", "cassava"),
        ("flour",),
    ),
    (("rice", "chickpea", "lentil", "corn"), ("noodle", "pasta")),
])

# Whole words that contain a term but are not that ingredient.
_SAFE_WORDS: dict[str, frozenset[str]] = {
    "egg": frozenset({"eggplant", "eggplants"}),
    "butter": frozenset({"butternut", "butterflied", "butterfly", "butterhead"}),
    "cream": frozenset({"creamy"}),
    "cheese": frozenset({"cheesecloth"}),
    "ham": frozenset({"graham", "champagne", "champignon", "champignons", "chamomile", "hamburger", "hamburgers"}),
    "milk": frozenset({"soymilk", "oatmilk"}),
    "rye": frozenset({"fryer", "fryers", "dryer"}),
    "crab": frozenset({"crabapple", "crabapples"}),
    "bread": frozenset({"breadfruit"}),
    "meat": frozenset({"meatless"}),
}

# Phrases that start with a term but name something else.
_SAFE_PHRASES: tuple[str, ...] = (
    "cream of tartar",
    "oyster mushroom",
    "butter bean",
    "butter lettuce",
    "beefsteak tomato",
)

_NEGATION_PREFIXES = ("no ", "without ", "non-", "non ")
_FREE_SUFFIXES = ("-free", " free")


# ---------------------------------------------------------------------------
# Public helpers
# ---------------------------------------------------------------------------

def expand_terms(profile: SafetyProfile) -> dict[str, str]:
    """Map every concrete ingredient term to the profile entry it comes from."""
    terms: dict[str, str] = {}
    for name in sorted(profile.allergens):
        for term in ALLERGEN_INGREDIENT_MAP.get(name) or [_bare_name(name)]:
            terms.setdefault(term, name)
    for name in sorted(profile.restrictions):
        for term in RESTRICTION_INGREDIENT_MAP.get(name) or [_bare_name(name)]:
            terms.setdefault(term, name)
    terms.pop("", None)
    return terms


def detect_disallowed_ingredients(recipe: RecipeData, profile: SafetyProfile) -> list[str]:
    """Return the ingredient lines that contain a disallowed term."""
    if not profile.has_ingredient_constraints:
        return []

    terms = expand_terms(profile)
    offending: list[str] = []
    for ingredient in recipe.ingredients:
        line = ingredient.lower()
        if any(_mentions(term, line) for term in terms):
            offending.append(ingredient)
    return offending


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _bare_name(name: str) -> str:
    bare = name.strip().lower()
    for prefix in _NEGATION_PREFIXES:
        if bare.startswith(prefix):
            bare = bare[len(prefix):]
            break
    for suffix in _FREE_SUFFIXES:
        if bare.endswith(suffix):
            bare = bare[: -len(suffix)]
            break
    return bare.strip()


@lru_cache(maxsize=None)
def _term_pattern(term: str) -> re.Pattern:
    # Spans the whole word(s) containing the term; "anchovy" also hits "anchovies".
    stem = re.escape(term)
    if len(term) > 1 and term.endswith("y") and term[-2] not in "aeiou":
        stem = re.escape(term[:-1]) + "(?:y|ie)"
    return re.compile(r"(?<![a-z])[a-z]*?" + stem + r"[a-z]*")


def _mentions(term: str, line: str) -> bool:
    safe_words = _SAFE_WORDS.get(term, frozenset())
    for match in _term_pattern(term).finditer(line):
        if match.group() in safe_words or line.startswith(_SAFE_PHRASES, match.start()):
            continue
        if _is_neutralised(line, match.start(), match.end(), term):
            continue
        return True
    return False


def _is_neutralised(line: str, start: int, end: int, term: str) -> bool:
    if line.startswith(_FREE_SUFFIXES, end):
        return True
    head = line[:start].rstrip()
    for qualifier, family in NEUTRALISING_QUALIFIERS.items():
        if family is not None and term not in family:
            continue
        if re.search(r"(?:^|[\s(,])" + re.escape(qualifier) + r"$", head):
            return True
    return False
