from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FilterRequest(CamelModel):
    diet_category: list[str] | None = Field(default=None, description='e.g. ["Vegan", "Veg"]')
    ingredients: list[str] | None = Field(
        default=None, description="Every term must appear in some cleaned ingredient"
    )
    cooking_method: list[str] | None = None
    cuisine: list[str] | None = None
    max_time: int | None = Field(default=None, ge=0, description="Upper bound in minutes, inclusive")


class Recipe(CamelModel):
    id: str
    name: str
    ingredients: list[str] = Field(default_factory=list)
    cleaned_ingredients: list[str] = Field(default_factory=list)
    total_time_minutes: int = Field(default=0, ge=0)
    cuisine: str = ""
    instructions: str = ""
    url: str = ""
    image_url: str = ""
    ingredient_count: int = 0
    diet_category: str = ""
    meal_type: str = ""
    cooking_method: str = ""


class RecipeOut(Recipe):
    liked: bool = False


class FilterOptions(CamelModel):
    diet_categories: list[str] = Field(default_factory=list)
    ingredients: list[str] = Field(default_factory=list)
    cooking_methods: list[str] = Field(default_factory=list)
    cuisines: list[str] = Field(default_factory=list)
