"""
Seed dataset for a freshly started store.

The store starts every process with the same three demo areas (and
their structures), no orders and no activities.  The catalog lives in
``seed_areas.json`` next to this module.

Usage::

    from readymix.core.data import load_seed_areas

    areas = load_seed_areas(stamp=utc_now(), updated_by="admin")
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path

from readymix.core.models.area import ProjectArea

logger = logging.getLogger(__name__)

_DATA_DIR = Path(__file__).parent
SEED_AREAS_FILE = "seed_areas.json"
SEED_ACTOR_ID = "admin"


def load_seed_areas(
    stamp: datetime,
    updated_by: str = SEED_ACTOR_ID,
    path: Path | None = None,
) -> list[ProjectArea]:
    """Build the seed areas, stamping every area and structure.

    Args:
        stamp: ``last_updated`` for every seeded record.
        updated_by: ``updated_by`` for every seeded record.
        path: Alternative catalog file (tests).
    """
    path = path or _DATA_DIR / SEED_AREAS_FILE
    with open(path, encoding="utf-8") as f:
        raw = json.load(f)

    areas = []
    for item in raw:
        structures = [
            {**s, "last_updated": stamp, "updated_by": updated_by}
            for s in item.get("structures", [])
        ]
        areas.append(ProjectArea.model_validate({
            **item,
            "structures": structures,
            "last_updated": stamp,
            "updated_by": updated_by,
        }))

    logger.debug("Loaded %d seed areas from %s", len(areas), path.name)
    return areas
