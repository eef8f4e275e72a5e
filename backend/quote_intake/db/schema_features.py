"""
Optional-column detection.

Deployments created before the urgency column existed keep working: the
capability is read once from the database catalog and never re-checked, so a
migration applied while the process runs is only seen after a restart.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import inspect
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SchemaFeatures:
    has_urgency: bool = False


def detect_schema_features(bind: Engine) -> SchemaFeatures:
    try:
        columns = inspect(bind).get_columns("quotes")
    except SQLAlchemyError as exc:
        logger.warning("Schema inspection failed, assuming no urgency column: %s", exc)
        return SchemaFeatures(has_urgency=False)

    has_urgency = any(c["name"] == "urgency" for c in columns)
    logger.info("Schema features: urgency column %s", "present" if has_urgency else "absent")
    return SchemaFeatures(has_urgency=has_urgency)
