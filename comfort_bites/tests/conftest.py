from __future__ import annotations

import json
import os
from pathlib import Path

import pytest

# Keep the module-level app from creating a database file in the working directory
os.environ.setdefault("DATABASE_URL", "sqlite://")

from fastapi.testclient import TestClient  # noqa: E402

from comfort_bites.app import create_app  # noqa: E402
from comfort_bites.config import AppConfig  # noqa: E402


class FakeClock:
    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _make_recipe(n: int, **overrides) -> dict:
    record = {
        "id": f"{n:024x}",
        "legacy_id": str(n),
        "name": f"Recipe {n}",
        "ingredients": ["1 Onion"],
        "cleaned_ingredients": ["onion"],
        "total_time_mins": 30,
        "cuisine": "Indian",
        "instructions": "Cook it.",
        "url": f"https://example.com/{n}",
        "image_url": "",
        "ingredient_count": 1,
        "diet_category": "Veg",
        "meal_type": "Dinner",
        "cooking_method": "Sauteing",
    }
    record.update(overrides)
    return record


SAMPLE_RECIPES = [
    _make_recipe(
        1,
        name="Chana Masala",
        cleaned_ingredients=["chickpeas", "roma tomato", "onion"],
        total_time_mins=15,
        diet_category="Vegan",
        cuisine="North Indian",
        cooking_method="Pressure Cooking",
    ),
    _make_recipe(
        2,
        name="Vegetable Biryani",
        cleaned_ingredients=["basmati rice", "carrot", "onion"],
        total_time_mins=30,
        diet_category="Vegan",
        cuisine="Hyderabadi",
        cooking_method="Dum",
    ),
    _make_recipe(
        3,
        name="Egg Curry",
        cleaned_ingredients=["egg", "tomato puree", "onion"],
        total_time_mins=10,
        diet_category="Non-Veg",
        cuisine="North Indian",
        cooking_method="Sauteing",
        instructions="",
    ),
    _make_recipe(
        4,
        name="Paneer Tikka",
        cleaned_ingredients=["paneer", "yogurt", "capsicum"],
        total_time_mins=20,
        diet_category="Veg",
        cuisine="Punjabi",
        cooking_method="Grilling",
    ),
]


@pytest.fixture
def make_recipe():
    return _make_recipe


@pytest.fixture
def write_corpus():
    def _write(path: Path, records: list[dict]) -> Path:
        path.write_text(json.dumps(records), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def corpus_path(tmp_path: Path, write_corpus) -> Path:
    return write_corpus(tmp_path / "recipes.json", SAMPLE_RECIPES)


@pytest.fixture
def app_config(tmp_path: Path, corpus_path: Path) -> AppConfig:
    return AppConfig(
        session_secret="test-secret",
        database_url=f"sqlite:///{tmp_path / 'users.db'}",
        recipes_path=corpus_path,
        bcrypt_rounds=4,
    )


@pytest.fixture
def client(app_config: AppConfig) -> TestClient:
    return TestClient(create_app(app_config))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
