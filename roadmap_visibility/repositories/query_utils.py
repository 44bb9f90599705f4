"""Shared Firestore query helpers.

Uses keyword-based filters to avoid positional-argument warnings in newer
Firestore SDK versions. Falls back to positional style for simple test doubles
that do not support keyword filters.
"""

from google.cloud.firestore_v1.base_query import FieldFilter

# Firestore rejects 'in' filters with more values than this.
MAX_IN_VALUES = 30


def apply_where(query, field_path, op_string, value):
    try:
        return query.where(filter=FieldFilter(field_path, op_string, value))
    except TypeError:
        return query.where(field_path, op_string, value)


def chunked(values, size):
    values = list(values)
    for start in range(0, len(values), size):
        yield values[start:start + size]


def stream_where_in(query, field_path, values):
    """Stream docs matching ``field_path in values``, split into legal chunks."""
    docs = []
    for chunk in chunked(values, MAX_IN_VALUES):
        docs.extend(apply_where(query, field_path, 'in', chunk).stream())
    return docs
