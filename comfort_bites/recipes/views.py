from __future__ import annotations

from typing import Iterable

from .models import Recipe, RecipeOut

MISSING_INSTRUCTIONS = "Instructions are not available for this recipe."


def to_view(recipe: Recipe, liked: bool = False) -> RecipeOut:
    return RecipeOut(**recipe.model_dump(), liked=liked)


def to_views(recipes: Iterable[Recipe], favorites: Iterable[str] | None = None) -> list[RecipeOut]:
    """Stamp ``liked`` on each recipe from the caller's favorites. Anonymous callers pass ``None``."""
    favorite_ids = set(favorites or ())
    return [to_view(r, liked=r.id in favorite_ids) for r in recipes]


def with_instructions_fallback(view: RecipeOut) -> RecipeOut:
    if view.instructions.strip():
        return view
    return view.model_copy(update={"instructions": MISSING_INSTRUCTIONS})
