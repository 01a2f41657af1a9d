"""
Load initial portfolio content from a JSON file.

Expected layout:
    {"projects": [...], "achievements": [...], "experiences": [...]}
Entries use the same field names as the API (camelCase or snake_case).
"""

import json
import logging
from pathlib import Path
from typing import Dict

from pydantic import ValidationError

from portfolio.schemas import AchievementCreate, ExperienceCreate, ProjectCreate
from portfolio.storage import Storage

logger = logging.getLogger(__name__)


async def load_seed(storage: Storage, path: str | Path) -> Dict[str, int]:
    """Insert seed content into an empty store. Returns per-kind insert counts."""
    counts = {"projects": 0, "achievements": 0, "experiences": 0, "errors": 0}

    existing = await storage.list_projects(include_drafts=True)
    if existing:
        logger.info(f"Store already has {len(existing)} projects, skipping seed")
        return counts

    data = json.loads(Path(path).read_text(encoding="utf-8"))

    sections = (
        ("projects", ProjectCreate, storage.create_project),
        ("achievements", AchievementCreate, storage.create_achievement),
        ("experiences", ExperienceCreate, storage.create_experience),
    )
    for key, schema, create in sections:
        for index, entry in enumerate(data.get(key, [])):
            try:
                item = schema.model_validate(entry)
            except ValidationError as e:
                logger.warning(f"Skipping {key}[{index}]: {e.error_count()} validation errors")
                counts["errors"] += 1
                continue
            await create(item)
            counts[key] += 1

    logger.info(
        f"Seed complete: {counts['projects']} projects, {counts['achievements']} achievements, "
        f"{counts['experiences']} experiences, {counts['errors']} errors"
    )
    return counts
