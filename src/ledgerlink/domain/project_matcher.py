"""Match a transaction's project/job reference to an internal project."""

from dataclasses import dataclass
from typing import Iterable, Optional

from ledgerlink.domain.entities import Project
from ledgerlink.utils.similarity import similarity

PLACEHOLDER_REFERENCES = {"", "tools", "split"}
DEFAULT_PROJECT_KEYWORDS = ("misc", "general", "tool")


@dataclass(frozen=True)
class ProjectMatch:
    """Result of matching one reference.

    ``match_type`` is one of ``default`` (placeholder reference), ``exact``,
    ``prefix`` (hierarchical fallback) or ``unmatched`` (routed to the default
    project so the row can still be imported).
    """

    project: Optional[Project]
    is_default: bool
    match_type: str


class ProjectMatcher:
    """Resolve project references against a fixed set of projects."""

    def __init__(self, projects: Iterable[Project]):
        self.projects = list(projects)
        self.default_project = self._find_default_project()

    def _find_default_project(self) -> Optional[Project]:
        for project in self.projects:
            name = (project.project_name or "").lower()
            if any(keyword in name for keyword in DEFAULT_PROJECT_KEYWORDS):
                return project
        return self.projects[0] if self.projects else None

    def match(self, reference: Optional[str]) -> ProjectMatch:
        """Match a reference such as "125-244".

        Order: placeholder -> exact project number -> same ``PREFIX`` in
        ``PREFIX-SUFFIX`` -> default project flagged as unmatched.
        """
        ref = (reference or "").strip()
        if ref.lower() in PLACEHOLDER_REFERENCES:
            return ProjectMatch(self.default_project, True, "default")

        lowered = ref.lower()
        for project in self.projects:
            if project.project_number.strip().lower() == lowered:
                return ProjectMatch(project, False, "exact")

        parts = lowered.split("-")
        if len(parts) == 2 and parts[0]:
            prefix = parts[0]
            for project in self.projects:
                project_parts = project.project_number.strip().lower().split("-")
                if len(project_parts) == 2 and project_parts[0] == prefix:
                    return ProjectMatch(project, False, "prefix")

        return ProjectMatch(self.default_project, True, "unmatched")

    def suggest(self, reference: str, limit: int = 3) -> list[tuple[Project, float]]:
        """Rank projects whose number resembles an unmatched reference."""
        scored = [
            (project, similarity(reference, project.project_number))
            for project in self.projects
        ]
        scored = [(p, round(score * 100, 2)) for p, score in scored if score >= 0.5]
        scored.sort(key=lambda item: item[1], reverse=True)
        return scored[:limit]
