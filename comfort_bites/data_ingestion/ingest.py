from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, List

import pandas as pd

from ..recipes.data_store import RECIPE_COLUMNS
from .config import DEFAULT_INGESTION_CONFIG, IngestionConfig

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


def _extract_id(raw_id: Any) -> str:
    # Extended-JSON exports wrap object ids as {"$oid": "..."}
    if isinstance(raw_id, dict):
        return str(raw_id.get("$oid", ""))
    if raw_id is None or (isinstance(raw_id, float) and pd.isna(raw_id)):
        return ""
    return str(raw_id)


def clean_ingredient(raw: str) -> str:
    return _WHITESPACE.sub(" ", str(raw)).strip().lower()


def _as_list(value: Any) -> list[str]:
    if isinstance(value, list):
        return [str(v) for v in value if v is not None]
    return []


def _list_column(values: list[list[str]], index: pd.Index) -> pd.Series:
    # dtype=object keeps equal-length lists from being read as a 2-D array
    return pd.Series(values, index=index, dtype=object)


def run_ingestion(config: IngestionConfig = DEFAULT_INGESTION_CONFIG) -> Path:
    """
    Execute the recipe ingestion pipeline.

    Steps:
    - Load the raw JSON export.
    - Map raw fields into the canonical recipe columns.
    - Persist cleaned records as JSON for the Recipe Store.
    """

    config.processed_data_dir.mkdir(parents=True, exist_ok=True)

    df = pd.read_json(config.raw_path, orient="records", dtype=False, convert_dates=False)

    # Exports from different tools disagree on field casing.
    def _first_present(columns: List[str]) -> str | None:
        for col in columns:
            if col in df.columns:
                return col
        return None

    def _text(columns: List[str]) -> pd.Series:
        col = _first_present(columns)
        if col is None:
            return pd.Series([""] * len(df), index=df.index, dtype=object)
        return df[col].fillna("").astype(str)

    col_id = _first_present(["_id", "id", "mongoId"])
    col_ingredients = _first_present(["ingredients"])
    col_cleaned = _first_present(["cleaned_ingredients", "cleanedIngredients"])
    col_time = _first_present(["total_time_mins", "totalTimeMinutes", "total_time"])
    col_count = _first_present(["ingredient_count", "ingredientCount"])

    canonical = pd.DataFrame(index=df.index)
    canonical["id"] = df[col_id].apply(_extract_id) if col_id else ""
    canonical["legacy_id"] = [str(i + 1) for i in range(len(df))]
    canonical["name"] = _text(["name"])

    raw_ingredients = [_as_list(v) for v in df[col_ingredients]] if col_ingredients else [[] for _ in df.index]
    cleaned = [_as_list(v) for v in df[col_cleaned]] if col_cleaned else [[] for _ in df.index]
    canonical["ingredients"] = _list_column(raw_ingredients, df.index)
    # Derive cleaned ingredients from the raw list where the export lacks them
    canonical["cleaned_ingredients"] = _list_column(
        [c if c else [clean_ingredient(i) for i in raw] for c, raw in zip(cleaned, raw_ingredients)],
        df.index,
    )

    if col_time:
        canonical["total_time_mins"] = (
            pd.to_numeric(df[col_time], errors="coerce").fillna(0).clip(lower=0).astype(int)
        )
    else:
        canonical["total_time_mins"] = 0

    canonical["cuisine"] = _text(["cuisine"])
    canonical["instructions"] = _text(["instructions"])
    canonical["url"] = _text(["url"])
    canonical["image_url"] = _text(["image_url", "imageUrl"])

    counts = pd.to_numeric(df[col_count], errors="coerce") if col_count else pd.Series(pd.NA, index=df.index)
    canonical["ingredient_count"] = [
        int(n) if pd.notna(n) else len(raw) for n, raw in zip(counts, raw_ingredients)
    ]

    canonical["diet_category"] = _text(["diet_category", "dietCategory"])
    canonical["meal_type"] = _text(["meal_type", "mealType"])
    canonical["cooking_method"] = _text(["cooking_method", "cookingMethod"])

    missing_ids = canonical["id"] == ""
    if missing_ids.any():
        logger.warning("Dropping %d recipes without an id", int(missing_ids.sum()))
        canonical = canonical.loc[~missing_ids]

    canonical = canonical[RECIPE_COLUMNS]

    output_path = config.processed_path
    canonical.to_json(output_path, orient="records", indent=2, force_ascii=False)
    return output_path


if __name__ == "__main__":
    path = run_ingestion()
    print(f"Ingestion complete. Processed data saved to: {path}")
