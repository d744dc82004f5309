"""
Schemas for the Portfolio catalog

Project and Skill double as MongoDB collection shapes (lowercased class name:
"project", "skill"). Field names are snake_case in Python and camelCase on the
wire; both spellings are accepted on input.
"""

from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def parse_technologies(value: Any) -> List[str]:
    """Normalize a technologies value to an ordered list of unique names.

    Accepts a list of strings or a comma-separated string ("React, Go,").
    Entries are trimmed and empties dropped. Order of first appearance wins.
    """
    if value is None:
        return []
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = list(value)
    else:
        raise ValueError("technologies must be a list of strings or a comma-separated string")

    out: List[str] = []
    for item in items:
        if not isinstance(item, str):
            raise ValueError("technologies must only contain strings")
        name = item.strip()
        if name and name not in out:
            out.append(name)
    return out


class WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# =======
# Skills
# =======
class SkillCategory(str, Enum):
    FRONTEND = "frontend"
    BACKEND = "backend"
    TOOLS = "tools"
    DATABASE = "database"
    OTHER = "other"


class Skill(WireModel):
    name: str = Field(..., min_length=1)
    level: int = Field(..., ge=0, le=100)
    category: SkillCategory = SkillCategory.OTHER


# ========
# Projects
# ========
class Project(WireModel):
    id: int
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    technologies: List[str] = []
    demo_url: Optional[str] = Field(None, alias="demoUrl")
    source_url: Optional[str] = Field(None, alias="sourceUrl")
    featured: bool = False


class ProjectCreate(WireModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    technologies: List[str] = []
    demo_url: Optional[str] = Field(None, alias="demoUrl")
    source_url: Optional[str] = Field(None, alias="sourceUrl")
    featured: bool = False

    @field_validator("technologies", mode="before")
    @classmethod
    def _split_technologies(cls, value: Any) -> List[str]:
        return parse_technologies(value)


class ProjectUpdate(WireModel):
    """Partial update. Only fields present in the request body are applied;
    an ``id`` in the body is ignored."""

    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    technologies: Optional[List[str]] = None
    demo_url: Optional[str] = Field(None, alias="demoUrl")
    source_url: Optional[str] = Field(None, alias="sourceUrl")
    featured: Optional[bool] = None

    @field_validator("technologies", mode="before")
    @classmethod
    def _split_technologies(cls, value: Any) -> List[str]:
        return parse_technologies(value)

    @field_validator("title", "featured")
    @classmethod
    def _not_null(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("may not be null")
        return value

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


# ===========
# Wire bodies
# ===========
class LoginRequest(BaseModel):
    username: str
    password: str


class Token(BaseModel):
    success: bool = True
    token: str
    token_type: str = "bearer"


class SkillsUpdate(BaseModel):
    skills: List[Skill]


class LearningUpdate(WireModel):
    currently_learning: List[str] = Field(..., alias="currentlyLearning")
