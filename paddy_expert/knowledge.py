"""
Static disease knowledge, keyed by the classifier's category id.

The bundled ``data/disease_info.csv`` has one row per category. List-valued
columns (symptoms, causes, treatment, prevention) are ``;``-separated.
"""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

LIST_COLUMNS = ("symptoms", "causes", "treatment", "prevention")


@dataclass(frozen=True)
class DiseaseInfo:
    disease_class: str
    name_id: str
    name_en: str
    scientific_name: str
    category: str           # disease | pest | healthy
    severity: str           # severe | moderate | mild | healthy
    description: str
    symptoms: List[str] = field(default_factory=list)
    causes: List[str] = field(default_factory=list)
    treatment: List[str] = field(default_factory=list)
    prevention: List[str] = field(default_factory=list)


def _split_list(raw: Optional[str]) -> List[str]:
    return [item.strip() for item in (raw or "").split(";") if item.strip()]


def load_disease_info(path: Path) -> Dict[str, DiseaseInfo]:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError("Disease knowledge file not found at %s" % path)

    kb: Dict[str, DiseaseInfo] = {}
    with path.open(newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        for row in reader:
            key = (row.get("disease_class") or "").strip()
            if not key:
                continue
            lists = {col: _split_list(row.get(col)) for col in LIST_COLUMNS}
            kb[key] = DiseaseInfo(
                disease_class=key,
                name_id=(row.get("name_id") or "").strip(),
                name_en=(row.get("name_en") or "").strip(),
                scientific_name=(row.get("scientific_name") or "").strip(),
                category=(row.get("category") or "").strip(),
                severity=(row.get("severity") or "").strip(),
                description=(row.get("description") or "").strip(),
                **lists,
            )
    logger.info("Loaded %d disease entries from %s", len(kb), path)
    return kb


def localized_name(kb: Dict[str, DiseaseInfo], disease_class: str) -> str:
    """Indonesian display name, falling back to the raw category id."""
    info = kb.get(disease_class)
    if info is not None and info.name_id:
        return info.name_id
    return disease_class
