"""Import report — the single diagnostics artifact of an import run.

Every non-fatal condition (dropped item, defaulted name, unknown type) is
recorded here. Identical issues are collapsed into one entry with a count and
a bounded list of context samples, so very messy exports stay readable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

DEFAULT_MAX_SAMPLES = 5


class IssueLevel(Enum):
    INFO = "info"  # Classification note, nothing was lost
    WARN = "warn"  # Item dropped, defaulted or skipped
    ERROR = "error"  # Reserved for callers that want to surface failures


@dataclass
class ImportIssue:
    """A deduplicated diagnostic with an occurrence count."""

    level: IssueLevel
    code: str  # Machine-readable issue code
    message: str
    count: int = 1
    samples: list[dict[str, Any]] = field(default_factory=list)

    @property
    def key(self) -> tuple[str, str, str]:
        return (self.level.value, self.code, self.message)


@dataclass
class ImportReport:
    """Warnings, deduplicated issues and unknown-type counters for one import."""

    source: str = ""
    warnings: list[str] = field(default_factory=list)
    issues: list[ImportIssue] = field(default_factory=list)
    unknown_element_types: dict[str, int] = field(default_factory=dict)
    unknown_relationship_types: dict[str, int] = field(default_factory=dict)
    max_samples: int = DEFAULT_MAX_SAMPLES

    def add_issue(
        self,
        level: IssueLevel,
        message: str,
        code: str = "",
        context: dict[str, Any] | None = None,
    ) -> ImportIssue:
        code = code or level.value
        for issue in self.issues:
            if issue.key == (level.value, code, message):
                issue.count += 1
                if context and len(issue.samples) < self.max_samples:
                    issue.samples.append(dict(context))
                return issue

        issue = ImportIssue(level=level, code=code, message=message)
        if context and self.max_samples > 0:
            issue.samples.append(dict(context))
        self.issues.append(issue)
        return issue

    def add_warning(self, message: str, code: str = "", context: dict[str, Any] | None = None) -> None:
        """Record a warning in both the flat list and the issue list."""
        self.warnings.append(message)
        self.add_issue(IssueLevel.WARN, message, code=code, context=context)

    def add_info(self, message: str, code: str = "", context: dict[str, Any] | None = None) -> None:
        self.add_issue(IssueLevel.INFO, message, code=code, context=context)

    def add_error(self, message: str, code: str = "", context: dict[str, Any] | None = None) -> None:
        self.add_issue(IssueLevel.ERROR, message, code=code, context=context)

    def record_unknown_element_type(self, ns: str, name: str) -> None:
        key = f"{ns}:{name}"
        self.unknown_element_types[key] = self.unknown_element_types.get(key, 0) + 1

    def record_unknown_relationship_type(self, ns: str, name: str) -> None:
        key = f"{ns}:{name}"
        self.unknown_relationship_types[key] = self.unknown_relationship_types.get(key, 0) + 1

    def merge_unknown_counts(
        self,
        element_types: dict[str, int],
        relationship_types: dict[str, int],
    ) -> None:
        """Raise counters to at least the given values (a scan never lowers them)."""
        for key, count in element_types.items():
            self.unknown_element_types[key] = max(self.unknown_element_types.get(key, 0), count)
        for key, count in relationship_types.items():
            self.unknown_relationship_types[key] = max(self.unknown_relationship_types.get(key, 0), count)

    @property
    def errors(self) -> list[ImportIssue]:
        return [i for i in self.issues if i.level == IssueLevel.ERROR]

    @property
    def infos(self) -> list[ImportIssue]:
        return [i for i in self.issues if i.level == IssueLevel.INFO]

    def issues_with_code(self, code: str) -> list[ImportIssue]:
        return [i for i in self.issues if i.code == code]

    def summary(self) -> str:
        unknown = sum(self.unknown_element_types.values()) + sum(self.unknown_relationship_types.values())
        return (
            f"[{self.source or 'import'}] {len(self.warnings)} warning(s), "
            f"{len(self.errors)} error(s), {unknown} unknown type(s)"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "warnings": list(self.warnings),
            "issues": [
                {
                    "level": i.level.value,
                    "code": i.code,
                    "message": i.message,
                    "count": i.count,
                    "samples": list(i.samples),
                }
                for i in self.issues
            ],
            "unknown_element_types": dict(self.unknown_element_types),
            "unknown_relationship_types": dict(self.unknown_relationship_types),
        }
