from __future__ import annotations

import logging
import os
import re
import threading
from pathlib import Path

import pandas as pd

from ..errors import StoreUnavailable
from .cache import TTLCache
from .filters import build_mask
from .models import FilterOptions, FilterRequest, Recipe, RecipeOut
from .views import to_view

logger = logging.getLogger(__name__)

RECIPE_COLUMNS: list[str] = [
    "id",
    "legacy_id",
    "name",
    "ingredients",
    "cleaned_ingredients",
    "total_time_mins",
    "cuisine",
    "instructions",
    "url",
    "image_url",
    "ingredient_count",
    "diet_category",
    "meal_type",
    "cooking_method",
]

_TEXT_COLUMNS = [
    "id",
    "legacy_id",
    "name",
    "cuisine",
    "instructions",
    "url",
    "image_url",
    "diet_category",
    "meal_type",
    "cooking_method",
]
_LIST_COLUMNS = ["ingredients", "cleaned_ingredients"]

# Primary ids are document-store object ids; anything else is an import-time id.
_PRIMARY_ID = re.compile(r"^[0-9a-fA-F]{24}$")

DEFAULT_RESULT_LIMIT = 100
DEFAULT_INGREDIENT_SAMPLE = 1000
_OPTIONS_KEY = "filter_options"


def load_corpus(path: Path) -> pd.DataFrame:
    df = pd.read_json(path, orient="records", dtype=False, convert_dates=False)
    df = df.reindex(columns=RECIPE_COLUMNS)

    for col in _TEXT_COLUMNS:
        df[col] = df[col].fillna("").astype(str)
    for col in _LIST_COLUMNS:
        df[col] = df[col].apply(lambda v: [str(i) for i in v] if isinstance(v, list) else [])

    df["total_time_mins"] = (
        pd.to_numeric(df["total_time_mins"], errors="coerce").fillna(0).clip(lower=0).astype(int)
    )
    df["ingredient_count"] = pd.to_numeric(df["ingredient_count"], errors="coerce").fillna(0).astype(int)

    # Pre-casefold cleaned ingredients for substring matching
    df["cleaned_folded"] = df["cleaned_ingredients"].apply(lambda items: [i.casefold() for i in items])

    return df


def _row_to_recipe(row: pd.Series) -> Recipe:
    return Recipe(
        id=row["id"],
        name=row["name"],
        ingredients=list(row["ingredients"]),
        cleaned_ingredients=list(row["cleaned_ingredients"]),
        total_time_minutes=int(row["total_time_mins"]),
        cuisine=row["cuisine"],
        instructions=row["instructions"],
        url=row["url"],
        image_url=row["image_url"],
        ingredient_count=int(row["ingredient_count"]),
        diet_category=row["diet_category"],
        meal_type=row["meal_type"],
        cooking_method=row["cooking_method"],
    )


def _distinct(series: pd.Series) -> list[str]:
    return sorted(v for v in series.drop_duplicates().tolist() if v)


class RecipeStore:
    """In-memory recipe corpus backed by a JSON records file."""

    def __init__(
        self,
        path: Path,
        result_limit: int = DEFAULT_RESULT_LIMIT,
        ingredient_sample_size: int = DEFAULT_INGREDIENT_SAMPLE,
        options_cache: TTLCache | None = None,
    ) -> None:
        self.path = Path(path)
        self.result_limit = result_limit
        self.ingredient_sample_size = ingredient_sample_size
        self._options_cache = options_cache or TTLCache()
        self._df: pd.DataFrame | None = None
        self._lock = threading.Lock()

    def _frame(self) -> pd.DataFrame:
        """Return the corpus DataFrame, loading it on first call."""
        if self._df is None:
            with self._lock:
                if self._df is None:
                    try:
                        self._df = load_corpus(self.path)
                    except (OSError, ValueError) as exc:
                        raise StoreUnavailable(f"Could not load recipes from {self.path}") from exc
                    logger.info("Loaded %d recipes from %s", len(self._df), self.path)
        return self._df

    def _locate(self, df: pd.DataFrame, recipe_id: str) -> int | None:
        column = "id" if _PRIMARY_ID.match(recipe_id) else "legacy_id"
        hits = df.index[df[column] == recipe_id]
        return hits[0] if len(hits) else None

    # ── Reads ───────────────────────────────────────────────────────────

    def get_recipes(self, filters: FilterRequest | None = None) -> list[Recipe]:
        """Return up to ``result_limit`` matching recipes in corpus order. Empty on store errors."""
        try:
            df = self._frame()
            matched = df.loc[build_mask(df, filters)].head(self.result_limit)
            return [_row_to_recipe(row) for _, row in matched.iterrows()]
        except Exception:
            logger.warning(
                "Recipe query failed, returning no results (filters=%s)",
                filters.model_dump(exclude_none=True) if filters else None,
                exc_info=True,
            )
            return []

    def get_recipe_by_id(self, recipe_id: str) -> Recipe | None:
        try:
            df = self._frame()
            idx = self._locate(df, recipe_id)
            if idx is None:
                return None
            return _row_to_recipe(df.loc[idx])
        except Exception:
            logger.warning("Recipe lookup failed (id=%s)", recipe_id, exc_info=True)
            return None

    def toggle_like(self, recipe_id: str, liked: bool) -> RecipeOut | None:
        """Return the recipe stamped with ``liked``. Nothing is persisted; favorites own that state."""
        recipe = self.get_recipe_by_id(recipe_id)
        if recipe is None:
            return None
        return to_view(recipe, liked=liked)

    def get_filter_options(self) -> FilterOptions:
        """
        Distinct values for each filter dimension.

        Ingredients come from the first ``ingredient_sample_size`` records
        only, so rare ingredients further down the corpus may be missing.
        """
        cached = self._options_cache.get(_OPTIONS_KEY)
        if cached is not None:
            return cached

        try:
            df = self._frame()
            ingredients: set[str] = set()
            for items in df["cleaned_ingredients"].head(self.ingredient_sample_size):
                for ingredient in items:
                    if len(ingredient) > 2:
                        ingredients.add(ingredient)

            options = FilterOptions(
                diet_categories=_distinct(df["diet_category"]),
                ingredients=sorted(ingredients),
                cooking_methods=_distinct(df["cooking_method"]),
                cuisines=_distinct(df["cuisine"]),
            )
        except Exception:
            logger.warning("Filter options query failed, returning empty options", exc_info=True)
            return FilterOptions()

        self._options_cache.set(_OPTIONS_KEY, options)
        return options

    def cache_stats(self) -> dict:
        return self._options_cache.stats()

    # ── Writes ──────────────────────────────────────────────────────────

    def set_recipe_image_url(self, recipe_id: str, image_url: str) -> Recipe | None:
        self._frame()
        with self._lock:
            df = self._df
            idx = self._locate(df, recipe_id)
            if idx is None:
                return None
            updated = df.copy()
            updated.at[idx, "image_url"] = image_url
            self._persist(updated)
            self._df = updated
        logger.info("Updated image for recipe %s", recipe_id)
        return _row_to_recipe(updated.loc[idx])

    def _persist(self, df: pd.DataFrame) -> None:
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            df[RECIPE_COLUMNS].to_json(tmp_path, orient="records", indent=2, force_ascii=False)
            os.replace(tmp_path, self.path)
        except (OSError, ValueError) as exc:
            logger.error("Failed to write recipes to %s", self.path, exc_info=True)
            raise StoreUnavailable("Could not save recipe changes") from exc
