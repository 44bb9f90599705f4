import copy
import itertools

import pytest

from roadmap_visibility.services import visibility_store


class FakeSnapshot:
    def __init__(self, reference, data):
        self.reference = reference
        self.id = reference.id
        self._data = data
        self.exists = data is not None

    def to_dict(self):
        return copy.deepcopy(self._data) if self._data is not None else None


class FakeDocumentRef:
    def __init__(self, db, collection_name, doc_id):
        self._db = db
        self.collection_name = collection_name
        self.id = doc_id

    def _docs(self):
        return self._db.data.setdefault(self.collection_name, {})

    def get(self, transaction=None):
        self._db.check(self.collection_name, 'get')
        data = copy.deepcopy(self._docs().get(self.id))
        if transaction is not None:
            transaction.record_read(self, data)
        return FakeSnapshot(self, data)

    def set(self, payload, merge=False):
        self._db.check(self.collection_name, 'set')
        self._db.writes.append((self.collection_name, self.id, copy.deepcopy(payload), merge))
        docs = self._docs()
        if merge and self.id in docs:
            docs[self.id].update(copy.deepcopy(payload))
        else:
            docs[self.id] = copy.deepcopy(payload)

    def delete(self):
        self._db.check(self.collection_name, 'delete')
        self._docs().pop(self.id, None)


class FakeQuery:
    """Positional-only ``where`` like older SDKs, so apply_where falls back."""

    def __init__(self, db, collection_name, filters=(), limit_count=None):
        self._db = db
        self.collection_name = collection_name
        self._filters = tuple(filters)
        self._limit = limit_count

    def where(self, *args, **kwargs):
        if 'filter' in kwargs:
            raise TypeError('filter keyword unsupported')
        field_path, op_string, value = args
        return FakeQuery(self._db, self.collection_name, self._filters + ((field_path, op_string, value),), self._limit)

    def limit(self, count):
        return FakeQuery(self._db, self.collection_name, self._filters, count)

    def order_by(self, field_path, direction=None):
        return self

    def _matches(self, data):
        for field_path, op_string, value in self._filters:
            actual = data.get(field_path)
            if op_string == '==' and actual != value:
                return False
            if op_string == 'in':
                if len(value) > 30:
                    raise ValueError('in filter supports at most 30 values')
                if actual not in value:
                    return False
        return True

    def stream(self):
        self._db.check(self.collection_name, 'stream')
        self._db.queries.append((self.collection_name, self._filters))
        docs = self._db.data.setdefault(self.collection_name, {})
        results = []
        for doc_id in sorted(docs):
            data = docs[doc_id]
            if self._matches(data):
                results.append(FakeSnapshot(FakeDocumentRef(self._db, self.collection_name, doc_id), copy.deepcopy(data)))
        if self._limit is not None:
            results = results[:self._limit]
        return iter(results)


class FakeCollection(FakeQuery):
    def __init__(self, db, collection_name):
        super().__init__(db, collection_name)

    def document(self, doc_id=None):
        if doc_id is None:
            doc_id = f"auto-{next(self._db.ids)}"
        return FakeDocumentRef(self._db, self.collection_name, doc_id)

    def add(self, payload):
        self._db.check(self.collection_name, 'add')
        ref = self.document()
        self._db.data.setdefault(self.collection_name, {})[ref.id] = copy.deepcopy(payload)
        return None, ref


class FakeBatch:
    def __init__(self, db):
        self._db = db
        self._ops = []

    def set(self, ref, payload, merge=False):
        self._ops.append((ref, payload, merge))

    def commit(self):
        self._db.check('*', 'commit')
        self._db.batch_commits += 1
        if self._db.batch_commits in self._db.failing_batch_commits:
            raise RuntimeError(f"simulated failure: batch commit {self._db.batch_commits}")
        self._db.batch_sizes.append(len(self._ops))
        for ref, payload, merge in self._ops:
            ref.set(payload, merge=merge)


class FakeTransactionConflict(Exception):
    pass


class FakeTransaction:
    """Optimistic transaction: commit fails if a document read has since changed."""

    def __init__(self, db):
        self._db = db
        self._reads = {}
        self._ops = []

    def begin(self):
        self._reads = {}
        self._ops = []

    def record_read(self, ref, data):
        self._reads[(ref.collection_name, ref.id)] = copy.deepcopy(data)

    def set(self, ref, payload, merge=False):
        self._ops.append((ref, payload, merge))

    def commit(self):
        for (collection_name, doc_id), data in self._reads.items():
            if self._db.data.get(collection_name, {}).get(doc_id) != data:
                raise FakeTransactionConflict(f"{collection_name}/{doc_id} changed")
        for ref, payload, merge in self._ops:
            ref.set(payload, merge=merge)


class FakeFirestoreModule:
    MAX_ATTEMPTS = 5

    @staticmethod
    def transactional(fn):
        def _run(transaction, *args, **kwargs):
            for _ in range(FakeFirestoreModule.MAX_ATTEMPTS):
                transaction.begin()
                result = fn(transaction, *args, **kwargs)
                transaction._db.run_before_commit()
                try:
                    transaction.commit()
                except FakeTransactionConflict:
                    transaction._db.transaction_retries += 1
                    continue
                return result
            raise RuntimeError('transaction contention')

        return _run


class FakeFirestore:
    def __init__(self):
        self.data = {}
        self.failures = set()
        self.writes = []
        self.queries = []
        self.batch_sizes = []
        self.batch_commits = 0
        self.failing_batch_commits = set()
        self.before_commit = []
        self.transaction_retries = 0
        self.ids = itertools.count(1)

    def run_before_commit(self):
        # Hooks run once; popping first lets a hook start its own transaction.
        hooks, self.before_commit = self.before_commit, []
        for hook in hooks:
            hook()

    def transaction(self):
        return FakeTransaction(self)

    def check(self, collection_name, op):
        for key in ((collection_name, op), ('*', op), (collection_name, '*')):
            if key in self.failures:
                raise RuntimeError(f"simulated failure: {collection_name}.{op}")

    def collection(self, name):
        return FakeCollection(self, name)

    def batch(self):
        return FakeBatch(self)

    def docs(self, collection_name):
        return copy.deepcopy(self.data.get(collection_name, {}))


class FakeClock:
    def __init__(self, start=1_700_000_000.0):
        self.now = start

    def time(self):
        self.now += 1.0
        return self.now


@pytest.fixture()
def fake_db():
    return FakeFirestore()


@pytest.fixture(autouse=True)
def fake_firestore_module(monkeypatch):
    monkeypatch.setattr(visibility_store, 'firestore', FakeFirestoreModule)
    return FakeFirestoreModule


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def add_roadmap(fake_db):
    """Store a roadmap in the content catalog; milestones maps node id -> objectives."""

    def _add(slug, milestones=None, edges=None, is_active=True, **extra):
        nodes = []
        for node_id, objectives in (milestones or {}).items():
            nodes.append({
                'id': node_id,
                'title': f"Milestone {node_id}",
                'description': f"About {node_id}",
                'type': 'milestone',
                'position': {'x': len(nodes) * 100, 'y': 0},
                'learning_objectives': list(objectives),
                'estimated_minutes': 30,
            })
        roadmap = {
            'slug': slug,
            'title': f"Roadmap {slug}",
            'description': f"Learn {slug}",
            'category': 'frontend',
            'difficulty': 'beginner',
            'estimated_hours': 10,
            'is_active': is_active,
            'nodes': nodes,
            'edges': list(edges or []),
        }
        roadmap.update(extra)
        fake_db.data.setdefault('roadmaps', {})[slug] = roadmap
        return roadmap

    return _add
