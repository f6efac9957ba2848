from __future__ import annotations

import json
from unittest.mock import patch

import pytest

from comfort_bites.errors import StoreUnavailable
from comfort_bites.recipes.cache import TTLCache
from comfort_bites.recipes.data_store import RecipeStore
from comfort_bites.recipes.models import FilterRequest


@pytest.fixture
def store(corpus_path):
    return RecipeStore(corpus_path)


# ── Queries ──────────────────────────────────────────────────────────────


def test_get_recipes_without_filter_returns_corpus_order(store):
    names = [r.name for r in store.get_recipes()]
    assert names == ["Chana Masala", "Vegetable Biryani", "Egg Curry", "Paneer Tikka"]


def test_get_recipes_is_capped_at_100(tmp_path, write_corpus, make_recipe):
    path = write_corpus(tmp_path / "big.json", [make_recipe(n) for n in range(1, 151)])
    recipes = RecipeStore(path).get_recipes()
    assert len(recipes) == 100
    assert recipes[0].id == f"{1:024x}"


def test_get_recipes_with_filters(store):
    recipes = store.get_recipes(FilterRequest(diet_category=["Vegan"], ingredients=["Tomato"]))
    assert [r.name for r in recipes] == ["Chana Masala"]


def test_get_recipes_returns_empty_when_corpus_missing(tmp_path):
    store = RecipeStore(tmp_path / "missing.json")
    assert store.get_recipes() == []
    assert store.get_recipe_by_id("0" * 24) is None


def test_get_recipes_returns_empty_when_query_fails(store):
    with patch("comfort_bites.recipes.data_store.build_mask", side_effect=RuntimeError("boom")):
        assert store.get_recipes(FilterRequest(cuisine=["Punjabi"])) == []


def test_recipe_fields_are_mapped(store):
    recipe = store.get_recipe_by_id(f"{1:024x}")
    assert recipe is not None
    assert recipe.cleaned_ingredients == ["chickpeas", "roma tomato", "onion"]
    assert recipe.total_time_minutes == 15
    assert recipe.diet_category == "Vegan"
    assert recipe.cooking_method == "Pressure Cooking"


def test_get_recipe_by_id_falls_back_to_legacy_id(store):
    recipe = store.get_recipe_by_id("2")
    assert recipe is not None
    assert recipe.name == "Vegetable Biryani"
    assert recipe.id == f"{2:024x}"


def test_get_recipe_by_id_nonexistent_is_absent(store):
    assert store.get_recipe_by_id("f" * 24) is None
    assert store.get_recipe_by_id("999") is None
    assert store.get_recipe_by_id("not-an-id") is None


# ── Like stamping ────────────────────────────────────────────────────────


def test_toggle_like_stamps_without_persisting(store):
    liked = store.toggle_like(f"{3:024x}", True)
    assert liked is not None and liked.liked is True
    again = store.toggle_like(f"{3:024x}", False)
    assert again.liked is False
    assert "liked" not in store.get_recipe_by_id(f"{3:024x}").model_dump()


def test_toggle_like_unknown_recipe(store):
    assert store.toggle_like("e" * 24, True) is None


# ── Image url writes ─────────────────────────────────────────────────────


def test_set_recipe_image_url_persists(store, corpus_path):
    updated = store.set_recipe_image_url(f"{4:024x}", "/uploads/paneer.jpg")
    assert updated.image_url == "/uploads/paneer.jpg"

    reloaded = RecipeStore(corpus_path).get_recipe_by_id(f"{4:024x}")
    assert reloaded.image_url == "/uploads/paneer.jpg"
    raw = json.loads(corpus_path.read_text(encoding="utf-8"))
    assert "cleaned_folded" not in raw[0]


def test_set_recipe_image_url_unknown_recipe(store):
    assert store.set_recipe_image_url("e" * 24, "/uploads/x.jpg") is None


def test_set_recipe_image_url_raises_when_write_fails(store):
    with patch("comfort_bites.recipes.data_store.os.replace", side_effect=OSError("disk full")):
        with pytest.raises(StoreUnavailable):
            store.set_recipe_image_url(f"{4:024x}", "/uploads/paneer.jpg")
    assert store.get_recipe_by_id(f"{4:024x}").image_url == ""


def test_set_recipe_image_url_raises_when_corpus_missing(tmp_path):
    with pytest.raises(StoreUnavailable):
        RecipeStore(tmp_path / "missing.json").set_recipe_image_url("0" * 24, "/x.jpg")


# ── Filter options ───────────────────────────────────────────────────────


def test_filter_options_are_sorted_and_distinct(store):
    options = store.get_filter_options()
    assert options.diet_categories == ["Non-Veg", "Veg", "Vegan"]
    assert options.cuisines == ["Hyderabadi", "North Indian", "Punjabi"]
    assert options.cooking_methods == ["Dum", "Grilling", "Pressure Cooking", "Sauteing"]
    assert "onion" in options.ingredients
    assert options.ingredients == sorted(set(options.ingredients))


def test_filter_options_skip_short_and_empty_values(tmp_path, write_corpus, make_recipe):
    path = write_corpus(
        tmp_path / "short.json",
        [
            make_recipe(1, cleaned_ingredients=["ox", "oxtail"], cuisine=""),
            make_recipe(2, cleaned_ingredients=["egg"], cuisine="Thai"),
        ],
    )
    options = RecipeStore(path).get_filter_options()
    assert options.ingredients == ["egg", "oxtail"]
    assert options.cuisines == ["Thai"]


def test_filter_options_sample_only_first_records(tmp_path, write_corpus, make_recipe):
    path = write_corpus(
        tmp_path / "sample.json",
        [
            make_recipe(1, cleaned_ingredients=["saffron"]),
            make_recipe(2, cleaned_ingredients=["truffle"], cuisine="French"),
        ],
    )
    options = RecipeStore(path, ingredient_sample_size=1).get_filter_options()
    assert options.ingredients == ["saffron"]
    # Other dimensions still scan the whole corpus
    assert "French" in options.cuisines


def test_filter_options_are_cached(corpus_path):
    cache = TTLCache()
    store = RecipeStore(corpus_path, options_cache=cache)
    first = store.get_filter_options()
    second = store.get_filter_options()
    assert first == second
    assert cache.stats()["hits"] == 1


def test_filter_options_empty_when_corpus_missing(tmp_path):
    options = RecipeStore(tmp_path / "missing.json").get_filter_options()
    assert options.diet_categories == []
    assert options.ingredients == []
