"""Issues JSON formatter.

WHY: Review dashboards, CI gates and issue trackers import findings as
JSON. This formatter writes the localized issues in a small, versioned
schema (issues_schema.json, shipped with the package) so consumers can
rely on its shape.

HOW: Each Issue becomes one object with its rule id, message, primary
location (null for project-wide issues) and labeled secondary
locations. The document is validated with jsonschema before returning.

RULES:
- Top level: {"version": "1.0.0", "source": ..., "issues": [...]}
- Issues keep the order they were given in
- primaryLocation is null exactly when the issue is project-wide
- Output suffix: "-issues.json"
- Validate output against the schema before returning; raise on failure
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Sequence

import jsonschema

from memdiag_converter.core.ir import Issue
from memdiag_converter.formatters.base import BaseFormatter, FormatterOutput

SCHEMA_VERSION = "1.0.0"

_SCHEMA_PATH = Path(__file__).resolve().parent / "issues_schema.json"


def _load_schema() -> dict[str, Any]:
    """Load the issues JSON schema from disk.

    Cached at module level after first call to avoid repeated I/O.
    """
    with open(_SCHEMA_PATH, encoding="utf-8") as f:
        return json.load(f)


_CACHED_SCHEMA: dict[str, Any] | None = None


def _get_schema() -> dict[str, Any]:
    global _CACHED_SCHEMA
    if _CACHED_SCHEMA is None:
        _CACHED_SCHEMA = _load_schema()
    return _CACHED_SCHEMA


def issue_to_dict(issue: Issue) -> dict[str, Any]:
    """Convert one Issue into its JSON object."""
    primary = None
    if not issue.is_project_wide:
        primary = {"file": issue.primary_file, "line": issue.primary_line}
    return {
        "ruleId": issue.rule_id,
        "message": issue.primary_message,
        "primaryLocation": primary,
        "secondaryLocations": [
            {"file": loc.file, "line": loc.line, "label": loc.label}
            for loc in issue.secondary_locations
        ],
    }


class JsonIssuesFormatter(BaseFormatter):
    """Formatter that produces the schema-validated issues JSON document."""

    @property
    def name(self) -> str:
        return "Issues JSON"

    def format(self, issues: Sequence[Issue], source: str) -> list[FormatterOutput]:
        """Convert issues into the issues JSON document.

        Raises:
            jsonschema.ValidationError: If the generated JSON does not
                conform to issues_schema.json.
        """
        output: dict[str, Any] = {
            "version": SCHEMA_VERSION,
            "source": source,
            "issues": [issue_to_dict(issue) for issue in issues],
        }

        jsonschema.validate(instance=output, schema=_get_schema())

        content = json.dumps(output, indent=2, ensure_ascii=False)

        return [
            FormatterOutput(
                suffix="-issues.json",
                content=content,
                media_type="application/json",
            )
        ]
