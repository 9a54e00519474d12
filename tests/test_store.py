import unittest
import sys
import os

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../')))

from formstore.exceptions import RecordNotFoundError, StoreError
from formstore.store import MemoryStore


class TestMemoryStore(unittest.TestCase):
    def test_read_missing(self):
        self.assertIsNone(MemoryStore().read("missing"))
        with self.assertRaises(RecordNotFoundError) as ctx:
            MemoryStore(raise_on_miss=True).read("missing")
        self.assertIsInstance(ctx.exception, StoreError)
        self.assertEqual(str(ctx.exception), "Record 'missing' not found.")

    def test_records_are_copied(self):
        store = MemoryStore()
        record = {"values": {"a": [1]}}
        store.write("k", record)
        record["values"]["a"].append(2)
        read = store.read("k")
        self.assertEqual(read, {"values": {"a": [1]}})
        read["values"]["a"].append(3)
        self.assertEqual(store.read("k"), {"values": {"a": [1]}})

    def test_watch_notifies_on_change_only(self):
        store = MemoryStore()
        received = []
        store.watch("k", received.append)
        store.write("k", {"v": 1})
        store.write("k", {"v": 1})
        store.write("k", {"v": 2})
        store.write("other", {"v": 3})
        self.assertEqual(received, [{"v": 1}, {"v": 2}])

    def test_watch_with_previous_value(self):
        store = MemoryStore()
        received = []
        store.watch("k", lambda new, previous: received.append((new, previous)))
        store.write("k", {"v": 1})
        store.write("k", {"v": 2})
        self.assertEqual(received, [({"v": 1}, None), ({"v": 2}, {"v": 1})])

    def test_unwatch(self):
        store = MemoryStore()
        received = []
        unwatch = store.watch("k", received.append)
        self.assertTrue(unwatch())
        self.assertFalse(unwatch())
        store.write("k", {"v": 1})
        self.assertEqual(received, [])

    def test_evict(self):
        store = MemoryStore()
        received = []
        store.write("k", {"v": 1})
        store.watch("k", received.append)
        store.evict("k")
        store.evict("k")
        self.assertNotIn("k", store)
        self.assertEqual(store.keys(), [])
        self.assertEqual(received, [None])


if __name__ == '__main__':
    unittest.main()
