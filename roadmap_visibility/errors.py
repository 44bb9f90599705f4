"""Typed errors raised by the visibility services."""

from enum import Enum


class VisibilityErrorCode(str, Enum):
    PARENT_NOT_FOUND = 'PARENT_NOT_FOUND'
    INVALID_INPUT = 'INVALID_INPUT'
    DATABASE_ERROR = 'DATABASE_ERROR'


class VisibilityError(Exception):
    def __init__(self, message, code, entity_type=None, entity_id=None):
        super().__init__(message)
        self.message = message
        self.code = VisibilityErrorCode(code)
        self.entity_type = entity_type
        self.entity_id = entity_id

    def to_dict(self):
        payload = {'error': self.message, 'code': self.code.value}
        if self.entity_type is not None:
            payload['entity_type'] = str(getattr(self.entity_type, 'value', self.entity_type))
        if self.entity_id is not None:
            payload['entity_id'] = self.entity_id
        return payload


class BatchWriteError(Exception):
    """A chunked batch write failed after some chunks were committed."""

    def __init__(self, committed, cause):
        super().__init__(f"Batch write failed after {len(committed)} committed records: {cause}")
        self.committed = list(committed)
