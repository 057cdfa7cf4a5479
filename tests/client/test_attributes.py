"""
Tests for the two-view attribute store.
"""
import unittest

from parsemodel.client.attributes import AttributeStore


class AttributeStoreTests(unittest.TestCase):
    def test_set_writes_both_views(self):
        store = AttributeStore()
        store.set("title", "a")
        self.assertEqual(store.committed, {"title": "a"})
        self.assertEqual(store.pending, {"title": "a"})
        store.set("title", "a")
        self.assertEqual(store.pending, {"title": "a"})

    def test_get_prefers_committed(self):
        store = AttributeStore(committed={"title": "server"}, pending={"title": "local", "draft": True})
        self.assertEqual(store.get("title"), "server")
        self.assertTrue(store.get("draft"))
        self.assertIsNone(store.get("missing"))
        self.assertEqual(store.get("missing", "default"), "default")

    def test_stage_leaves_committed_alone(self):
        store = AttributeStore(committed={"title": "a"})
        store.stage("title", "b")
        self.assertEqual(store.get("title"), "a")
        self.assertEqual(store.pending, {"title": "b"})

    def test_merge_response_pending_wins(self):
        store = AttributeStore()
        store.set("title", "local")
        store.merge_response({"objectId": "X1", "createdAt": "t0", "title": "server"})
        self.assertEqual(
            store.committed, {"objectId": "X1", "createdAt": "t0", "title": "local"}
        )
        self.assertEqual(store.pending, {})

    def test_merge_response_without_body(self):
        store = AttributeStore()
        store.set("title", "a")
        store.merge_response(None)
        self.assertEqual(store.committed, {"title": "a"})
        self.assertEqual(store.pending, {})

    def test_update_payload_strips_server_fields(self):
        store = AttributeStore(
            pending={"objectId": "X", "createdAt": "t0", "updatedAt": "t1", "title": "b"}
        )
        self.assertEqual(store.update_payload(), {"title": "b"})
        self.assertEqual(store.outgoing(), store.pending)

    def test_snapshot_and_keys(self):
        store = AttributeStore(committed={"a": 1}, pending={"a": 2, "b": 3})
        self.assertEqual(store.snapshot(), {"a": 1, "b": 3})
        self.assertEqual(store.keys(), {"a", "b"})
        self.assertIn("b", store)
        store.clear()
        self.assertEqual(store.keys(), set())
