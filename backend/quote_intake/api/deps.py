from __future__ import annotations

from fastapi import Request

from quote_intake.db.schema_features import SchemaFeatures, detect_schema_features
from quote_intake.db.session import engine


def get_schema_features(request: Request) -> SchemaFeatures:
    """
    Capability flags resolved at startup. Detected on first use if startup
    did not run, then kept for the life of the process.
    """
    features = getattr(request.app.state, "schema_features", None)
    if features is None:
        features = detect_schema_features(engine)
        request.app.state.schema_features = features
    return features
