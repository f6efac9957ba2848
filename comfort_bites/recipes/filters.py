"""
Filter engine.

A filter request is evaluated either per record (``matches``) or as a
boolean mask over the corpus DataFrame (``build_mask``). Both apply the
same rules:

- diet category, cooking method and cuisine: exact membership, OR within
  the dimension.
- max time: ``total time <= max_time``.
- ingredients: every requested term must be a substring of at least one
  cleaned ingredient, compared after casefolding both sides. Terms are
  stripped of surrounding whitespace first and blank terms are dropped, so
  " tomato" behaves like "tomato".
- Supplied dimensions combine with AND; an empty or missing dimension is no
  constraint.
"""
from __future__ import annotations

import pandas as pd

from .models import FilterRequest, Recipe


def normalize_terms(terms: list[str] | None) -> list[str]:
    """Casefold and strip ingredient terms, dropping blanks."""
    if not terms:
        return []
    return [t.strip().casefold() for t in terms if t and t.strip()]


def _has_all_terms(cleaned_folded: list[str], terms: list[str]) -> bool:
    return all(any(term in ingredient for ingredient in cleaned_folded) for term in terms)


def matches(recipe: Recipe, filters: FilterRequest | None) -> bool:
    if filters is None:
        return True

    if filters.diet_category and recipe.diet_category not in filters.diet_category:
        return False

    if filters.cooking_method and recipe.cooking_method not in filters.cooking_method:
        return False

    if filters.cuisine and recipe.cuisine not in filters.cuisine:
        return False

    if filters.max_time is not None and recipe.total_time_minutes > filters.max_time:
        return False

    terms = normalize_terms(filters.ingredients)
    if terms:
        cleaned_folded = [i.casefold() for i in recipe.cleaned_ingredients]
        if not _has_all_terms(cleaned_folded, terms):
            return False

    return True


def build_mask(df: pd.DataFrame, filters: FilterRequest | None) -> pd.Series:
    """Return a boolean Series selecting the rows of ``df`` that match."""
    mask = pd.Series(True, index=df.index)
    if filters is None:
        return mask

    if filters.diet_category:
        mask = mask & df["diet_category"].isin(filters.diet_category)

    if filters.cooking_method:
        mask = mask & df["cooking_method"].isin(filters.cooking_method)

    if filters.cuisine:
        mask = mask & df["cuisine"].isin(filters.cuisine)

    if filters.max_time is not None:
        mask = mask & (df["total_time_mins"] <= filters.max_time)

    terms = normalize_terms(filters.ingredients)
    if terms:
        has_terms = df["cleaned_folded"].apply(lambda cl: _has_all_terms(cl, terms))
        mask = mask & has_terms.astype(bool)

    return mask
