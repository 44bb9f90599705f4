"""Visibility records and the entity hierarchy they live in."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from roadmap_visibility.errors import VisibilityError, VisibilityErrorCode

MAX_ID_LENGTH = 200


class EntityType(str, Enum):
    ROADMAP = 'roadmap'
    MILESTONE = 'milestone'
    OBJECTIVE = 'objective'

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or '').strip().lower())
        except ValueError:
            raise VisibilityError(
                f"Unknown entity type '{value}'",
                VisibilityErrorCode.INVALID_INPUT,
            ) from None

    @property
    def parent_type(self):
        if self is EntityType.MILESTONE:
            return EntityType.ROADMAP
        if self is EntityType.OBJECTIVE:
            return EntityType.MILESTONE
        return None


def is_valid_identifier(value):
    if not isinstance(value, str):
        return False
    value = value.strip()
    if not value or len(value) > MAX_ID_LENGTH:
        return False
    if value in {'.', '..'} or '/' in value:
        return False
    return True


def objective_entity_id(milestone_id, index):
    return f"{milestone_id}-{int(index)}"


def parse_objective_index(entity_id):
    """Return the learning-objective index encoded in an objective id, or None."""
    _, sep, suffix = str(entity_id or '').rpartition('-')
    if not sep or not suffix.isdigit():
        return None
    return int(suffix)


@dataclass(frozen=True)
class CreateVisibilitySetting:
    entity_type: EntityType
    entity_id: str
    is_public: bool
    updated_by: str
    parent_roadmap_slug: Optional[str] = None
    parent_milestone_id: Optional[str] = None


@dataclass(frozen=True)
class VisibilitySetting:
    id: str
    entity_type: EntityType
    entity_id: str
    is_public: bool
    updated_by: str
    updated_at: float
    created_at: float
    parent_roadmap_slug: Optional[str] = None
    parent_milestone_id: Optional[str] = None

    @classmethod
    def from_doc(cls, data):
        data = data or {}
        return cls(
            id=str(data.get('id', '') or ''),
            entity_type=EntityType.parse(data.get('entity_type')),
            entity_id=str(data.get('entity_id', '') or ''),
            is_public=data.get('is_public') is True,
            updated_by=str(data.get('updated_by', '') or ''),
            updated_at=data.get('updated_at', 0) or 0,
            created_at=data.get('created_at', 0) or 0,
            parent_roadmap_slug=data.get('parent_roadmap_slug') or None,
            parent_milestone_id=data.get('parent_milestone_id') or None,
        )

    def to_dict(self):
        return {
            'id': self.id,
            'entity_type': self.entity_type.value,
            'entity_id': self.entity_id,
            'parent_roadmap_slug': self.parent_roadmap_slug,
            'parent_milestone_id': self.parent_milestone_id,
            'is_public': self.is_public,
            'updated_by': self.updated_by,
            'updated_at': self.updated_at,
            'created_at': self.created_at,
        }
