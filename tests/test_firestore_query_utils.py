from roadmap_visibility.repositories.query_utils import MAX_IN_VALUES, apply_where, chunked, stream_where_in


class _FilterCapableQuery:
    def __init__(self):
        self.kwargs = None

    def where(self, *args, **kwargs):
        self.kwargs = kwargs
        return self


class _PositionalOnlyQuery:
    def __init__(self):
        self.args = None

    def where(self, *args, **kwargs):
        if "filter" in kwargs:
            raise TypeError("filter keyword unsupported")
        self.args = args
        return self


class _RecordingInQuery:
    def __init__(self):
        self.chunks = []

    def where(self, *args, **kwargs):
        if "filter" in kwargs:
            raise TypeError("filter keyword unsupported")
        field_path, op_string, values = args
        assert op_string == "in"
        self.chunks.append(list(values))
        return _Stream([f"{field_path}={value}" for value in values])


class _Stream:
    def __init__(self, items):
        self.items = items

    def stream(self):
        return iter(self.items)


def test_apply_where_prefers_field_filter_keyword():
    query = _FilterCapableQuery()

    result = apply_where(query, "entity_type", "==", "roadmap")

    assert result is query
    assert query.kwargs is not None
    assert "filter" in query.kwargs


def test_apply_where_falls_back_to_positional_for_simple_test_doubles():
    query = _PositionalOnlyQuery()

    result = apply_where(query, "entity_type", "==", "roadmap")

    assert result is query
    assert query.args == ("entity_type", "==", "roadmap")


def test_chunked_splits_into_bounded_slices():
    assert list(chunked(range(5), 2)) == [[0, 1], [2, 3], [4]]
    assert list(chunked([], 2)) == []


def test_stream_where_in_splits_large_value_lists():
    query = _RecordingInQuery()
    values = [f"slug-{i}" for i in range(MAX_IN_VALUES + 5)]

    docs = stream_where_in(query, "slug", values)

    assert [len(chunk) for chunk in query.chunks] == [MAX_IN_VALUES, 5]
    assert len(docs) == len(values)
    assert docs[0] == "slug=slug-0"
