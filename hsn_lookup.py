from typing import Dict, List, Optional

import pandas as pd # type: ignore
from loguru import logger
from rapidfuzz import process, fuzz # type: ignore

from config import settings
from tax_calc import to_decimal


class HSNLookup:
    def __init__(self, csv_path: str, min_score: Optional[float] = None):
        """Load HSN code dataset (CSV must have columns: hsn_code, Description, rate)."""
        self.df = pd.read_csv(csv_path, dtype={"hsn_code": str, "hsn": str, "HSN": str})
        # normalize columns (case-insensitive)
        self.df.columns = [c.strip().lower() for c in self.df.columns]
        if "hsn" in self.df.columns and "hsn_code" not in self.df.columns:
            self.df.rename(columns={"hsn": "hsn_code"}, inplace=True)
        if "hsn_code" not in self.df.columns:
            raise ValueError("CSV must have an HSN code column")
        if "description" not in self.df.columns:
            raise ValueError("CSV must have a Description column")
        if "rate" not in self.df.columns:
            raise ValueError("CSV must have a Rate column")
        self.df = self.df.dropna(subset=["description"]).reset_index(drop=True)
        self.min_score = settings.HSN_MIN_SCORE if min_score is None else min_score
        logger.info("Loaded {} HSN codes from {}", len(self.df), csv_path)

    def suggest(self, description: str, limit: int = 1) -> List[Dict]:
        """Suggest closest HSN codes for an item description."""
        if not description or not description.strip():
            return []
        choices = self.df["description"].tolist()
        matches = process.extract(
            description, choices, scorer=fuzz.WRatio, limit=limit, score_cutoff=self.min_score
        )
        results = []
        for match, score, idx in matches:
            row = self.df.iloc[idx]
            results.append({
                "hsn_code": str(row["hsn_code"]),
                "Description": row["description"],
                "rate": to_decimal(str(row["rate"]).rstrip("%"), "rate"),
                "score": score,
            })
        if not results:
            logger.debug("No HSN match above {} for '{}'", self.min_score, description)
        return results
