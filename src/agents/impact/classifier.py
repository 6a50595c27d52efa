"""
Diff Classifier — turns the upstream differ's report into changed identifiers.

The report is a JSON document keyed by diff type, then by version:

    {"added":    {"1.3.2": {"files": ["A.java"], "methods": ["A.java#foo()"]}},
     "removed":  {"1.3.1": {"files": [], "methods": ["B.java#bar()"]}},
     "modified": {...}}

Parsing the textual diff itself is the differ's job; this adapter only
validates and freezes the classification it produced.
"""

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import RootModel, ValidationError

from src.agents.impact.models import (
    ChangedIdentifiers,
    DiffClassification,
    DiffType,
    freeze_classification,
)
from src.shared.exceptions import ClassificationError

logger = logging.getLogger("impact.classifier")


class _DiffReport(RootModel[dict[DiffType, dict[str, ChangedIdentifiers]]]):
    pass


class DiffClassifier:
    """Validates raw diff reports into an immutable DiffClassification."""

    def classify(self, raw_diff: str | bytes | dict[str, Any]) -> DiffClassification:
        """Classify a raw diff report.

        Args:
            raw_diff: JSON text (str/bytes) or an already-decoded dict.

        Returns:
            Read-only mapping ``DiffType -> version -> ChangedIdentifiers``.

        Raises:
            ClassificationError: If the report is not valid JSON, is not an
                object, names an unknown diff type, or has malformed entries.
        """
        if isinstance(raw_diff, (str, bytes)):
            try:
                decoded = json.loads(raw_diff)
            except (json.JSONDecodeError, UnicodeDecodeError) as exc:
                raise ClassificationError(f"Diff report is not valid JSON: {exc}") from exc
        else:
            decoded = raw_diff

        if not isinstance(decoded, dict):
            raise ClassificationError(
                f"Diff report must be a JSON object, got {type(decoded).__name__}"
            )

        try:
            report = _DiffReport.model_validate(decoded)
        except ValidationError as exc:
            raise ClassificationError(
                f"Malformed diff report ({exc.error_count()} error(s)): {exc}"
            ) from exc

        classification = freeze_classification(report.root)
        logger.info(
            "Classified diff — %s",
            ", ".join(
                f"{dt.value}: {len(per_version)} version(s)"
                for dt, per_version in classification.items()
            ) or "no changes",
        )
        return classification

    def classify_file(self, path: str | Path) -> DiffClassification:
        """Read a diff report from disk and classify it.

        Raises:
            ClassificationError: If the file cannot be read or is malformed.
        """
        try:
            raw = Path(path).read_text(encoding="utf-8")
        except OSError as exc:
            raise ClassificationError(f"Cannot read diff report {path}: {exc}") from exc
        return self.classify(raw)
