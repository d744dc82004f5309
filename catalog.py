"""
Catalog store: projects, skills, the "currently learning" list and the
technology tag index.

A single CatalogStore is owned by the application and handed to request
handlers. All mutation goes through its methods. Every write is computed on a
copy, persisted (when a backend is configured) and only then swapped in, under
one lock, so readers always see either the old or the new state.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Protocol

from errors import ProjectNotFound
from schemas import Project, ProjectCreate, ProjectUpdate, Skill, SkillCategory

logger = logging.getLogger("portfolio.catalog")

ALL_TAG = "all"

DEFAULT_SKILLS = [
    Skill(name="TypeScript", level=95, category=SkillCategory.FRONTEND),
    Skill(name="React", level=90, category=SkillCategory.FRONTEND),
    Skill(name="Node.js", level=85, category=SkillCategory.BACKEND),
    Skill(name="MongoDB", level=80, category=SkillCategory.DATABASE),
    Skill(name="TailwindCSS", level=88, category=SkillCategory.FRONTEND),
    Skill(name="Express.js", level=95, category=SkillCategory.BACKEND),
]

DEFAULT_LEARNING = ["Typescript", "React", "TailwindCSS"]

# Fields a GitHub import may overwrite on an existing project.
# title, featured and demo_url belong to the admin.
IMPORTED_FIELDS = ("description", "technologies", "source_url")


class CatalogBackend(Protocol):
    def load(self) -> Optional[dict]:
        ...

    def save(self, state: dict) -> None:
        ...

    def close(self) -> None:
        ...


@dataclass
class CatalogSnapshot:
    projects: List[Project] = field(default_factory=list)
    skills: List[Skill] = field(default_factory=list)
    currently_learning: List[str] = field(default_factory=list)
    technology_tags: List[str] = field(default_factory=list)

    def to_wire(self) -> dict:
        return {
            "currentlyLearning": list(self.currently_learning),
            "projects": [p.model_dump(by_alias=True) for p in self.projects],
            "skills": [s.model_dump(mode="json") for s in self.skills],
            "technologyTags": list(self.technology_tags),
        }


def _extend_tags(tags: List[str], technologies: Iterable[str]) -> List[str]:
    out = list(tags)
    for tech in technologies:
        if tech not in out:
            out.append(tech)
    return out


class CatalogStore:
    def __init__(self, backend: Optional[CatalogBackend] = None):
        self._backend = backend
        self._lock = threading.RLock()
        self._projects: List[Project] = []
        self._skills: List[Skill] = [s.model_copy() for s in DEFAULT_SKILLS]
        self._learning: List[str] = list(DEFAULT_LEARNING)
        self._tags: List[str] = [ALL_TAG]
        self._next_id = 1
        self._github_repos = 0

    # =========
    # Lifecycle
    # =========
    @property
    def backend(self) -> Optional[CatalogBackend]:
        return self._backend

    def load(self) -> None:
        """Replace in-memory state with whatever the backend has stored."""
        if self._backend is None:
            return
        state = self._backend.load()
        if not state:
            logger.info("No stored catalog found, starting from defaults")
            return
        with self._lock:
            self._apply(state)
        logger.info("Loaded catalog with %d projects", len(self._projects))

    def close(self) -> None:
        if self._backend is not None:
            self._backend.close()

    def _state(self, **overrides) -> dict:
        state = {
            "projects": self._projects,
            "skills": self._skills,
            "currently_learning": self._learning,
            "technology_tags": self._tags,
            "next_id": self._next_id,
            "github_repos": self._github_repos,
        }
        state.update(overrides)
        return state

    def _apply(self, state: dict) -> None:
        projects = [p if isinstance(p, Project) else Project.model_validate(p) for p in state.get("projects", [])]
        skills = [s if isinstance(s, Skill) else Skill.model_validate(s) for s in state.get("skills", [])]
        highest = max((p.id for p in projects), default=0)

        self._projects = projects
        self._skills = skills
        self._learning = list(state.get("currently_learning", []))
        self._tags = _extend_tags([ALL_TAG], state.get("technology_tags", []))
        self._next_id = max(int(state.get("next_id", 1)), highest + 1)
        self._github_repos = int(state.get("github_repos", 0))

    def _commit(self, **changes) -> None:
        """Persist the would-be state first, then swap it in. Caller holds the lock."""
        state = self._state(**changes)
        if self._backend is not None:
            self._backend.save(
                {
                    "projects": [p.model_dump() for p in state["projects"]],
                    "skills": [s.model_dump(mode="json") for s in state["skills"]],
                    "currently_learning": list(state["currently_learning"]),
                    "technology_tags": list(state["technology_tags"]),
                    "next_id": state["next_id"],
                    "github_repos": state["github_repos"],
                }
            )
        self._apply(state)

    # =====
    # Reads
    # =====
    def snapshot(self) -> CatalogSnapshot:
        with self._lock:
            return CatalogSnapshot(
                projects=[p.model_copy(deep=True) for p in self._projects],
                skills=[s.model_copy() for s in self._skills],
                currently_learning=list(self._learning),
                technology_tags=list(self._tags),
            )

    def get_project(self, project_id: int) -> Project:
        with self._lock:
            return self._find(project_id).model_copy(deep=True)

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {
                "totalProjects": len(self._projects),
                "featuredProjects": sum(1 for p in self._projects if p.featured),
                "totalSkills": len(self._skills),
                "githubRepos": self._github_repos,
            }

    def _find(self, project_id: int) -> Project:
        for project in self._projects:
            if project.id == project_id:
                return project
        raise ProjectNotFound(project_id)

    # ========
    # Projects
    # ========
    def create_project(self, fields: ProjectCreate) -> Project:
        with self._lock:
            project = Project(id=self._next_id, **fields.model_dump())
            self._commit(
                projects=self._projects + [project],
                technology_tags=_extend_tags(self._tags, project.technologies),
                next_id=self._next_id + 1,
            )
        logger.info("Created project %d (%s)", project.id, project.title)
        return project.model_copy(deep=True)

    def update_project(self, project_id: int, fields: ProjectUpdate) -> Project:
        changes = fields.changes()
        with self._lock:
            current = self._find(project_id)
            updated = current.model_copy(update=changes, deep=True)
            self._commit(
                projects=[updated if p.id == project_id else p for p in self._projects],
                technology_tags=_extend_tags(self._tags, updated.technologies),
            )
        logger.info("Updated project %d fields=%s", project_id, sorted(changes))
        return updated.model_copy(deep=True)

    def delete_project(self, project_id: int) -> None:
        with self._lock:
            self._find(project_id)
            # next_id is left alone so the id is never handed out again
            self._commit(projects=[p for p in self._projects if p.id != project_id])
        logger.info("Deleted project %d", project_id)

    def merge_imported(self, drafts: List[ProjectCreate]) -> List[Project]:
        """Fold freshly imported projects into the catalog.

        Existing projects are matched by source_url. A match only takes the
        fields that originate upstream; anything else is inserted with a new
        id. Projects missing from the import are left alone.
        """
        with self._lock:
            projects = list(self._projects)
            by_source = {p.source_url: i for i, p in enumerate(projects) if p.source_url}
            next_id = self._next_id
            tags = self._tags
            merged: List[Project] = []
            inserted = 0

            for draft in drafts:
                index = by_source.get(draft.source_url) if draft.source_url else None
                if index is not None:
                    update = draft.model_dump(include=set(IMPORTED_FIELDS))
                    project = projects[index].model_copy(update=update, deep=True)
                    projects[index] = project
                else:
                    project = Project(id=next_id, **draft.model_dump())
                    next_id += 1
                    inserted += 1
                    projects.append(project)
                    if project.source_url:
                        by_source[project.source_url] = len(projects) - 1
                tags = _extend_tags(tags, project.technologies)
                merged.append(project)

            self._commit(
                projects=projects,
                technology_tags=tags,
                next_id=next_id,
                github_repos=len(drafts),
            )
        logger.info("Merged %d imported projects (%d new)", len(drafts), inserted)
        return [p.model_copy(deep=True) for p in merged]

    # ===================
    # Skills and learning
    # ===================
    def replace_skills(self, skills: List[Skill]) -> List[Skill]:
        new_skills = [s.model_copy() for s in skills]
        with self._lock:
            self._commit(skills=new_skills)
        logger.info("Replaced skills (%d entries)", len(new_skills))
        return [s.model_copy() for s in new_skills]

    def replace_learning(self, items: List[str]) -> List[str]:
        new_items = list(items)
        with self._lock:
            self._commit(currently_learning=new_items)
        logger.info("Replaced currently-learning list (%d entries)", len(new_items))
        return list(new_items)
