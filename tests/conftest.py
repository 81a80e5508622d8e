import pytest


class FakeSnapshot:
    def __init__(self, doc_id, data):
        self.id = doc_id
        self._data = data
        self.exists = data is not None

    def to_dict(self):
        return None if self._data is None else dict(self._data)


class FakeWatch:
    def __init__(self, client, path, callback):
        self.client = client
        self.path = path
        self.callback = callback
        self.active = True

    def unsubscribe(self):
        self.active = False


class FakeDocument:
    def __init__(self, client, path):
        self.client = client
        self.path = path
        self.id = path.rsplit("/", 1)[-1]

    def get(self):
        self.client.gets.append(self.path)
        return FakeSnapshot(self.id, self.client.documents.get(self.path))

    def collection(self, name):
        return FakeCollection(self.client, f"{self.path}/{name}")


class FakeCollection:
    def __init__(self, client, path):
        self.client = client
        self.path = path
        self.id = path.rsplit("/", 1)[-1]

    def document(self, doc_id):
        return FakeDocument(self.client, f"{self.path}/{doc_id}")

    def on_snapshot(self, callback):
        if self.path in self.client.failing_watches:
            self.client.failing_watches.discard(self.path)
            raise RuntimeError(f"listen failed for {self.path}")
        watch = FakeWatch(self.client, self.path, callback)
        self.client.watches.append(watch)
        return watch


class FakeFirestore:
    """Just enough of the Firestore client for collection watches and document gets."""

    def __init__(self):
        self.documents = {}
        self.watches = []
        self.gets = []
        self.failing_watches = set()

    def collection(self, name):
        return FakeCollection(self, name)

    def active_watches(self, path=None):
        return [w for w in self.watches if w.active and (path is None or w.path == path)]

    def push(self, path, docs):
        """Deliver a snapshot of {doc_id: data} to every active watch on path."""
        snaps = [FakeSnapshot(doc_id, data) for doc_id, data in docs.items()]
        for watch in self.active_watches(path):
            watch.callback(snaps, [], None)


@pytest.fixture
def fake_db():
    return FakeFirestore()
