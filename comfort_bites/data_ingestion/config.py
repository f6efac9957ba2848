from dataclasses import dataclass
from pathlib import Path

_DATA_DIR = Path(__file__).resolve().parent.parent / "data"


@dataclass(frozen=True)
class IngestionConfig:
    """
    Configuration for the recipe ingestion pipeline.
    """

    raw_path: Path = _DATA_DIR / "raw" / "recipes.json"
    processed_data_dir: Path = _DATA_DIR / "processed"
    processed_filename: str = "recipes.json"

    @property
    def processed_path(self) -> Path:
        return self.processed_data_dir / self.processed_filename


DEFAULT_INGESTION_CONFIG = IngestionConfig()
