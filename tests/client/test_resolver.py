"""
Tests for reading relationship-shaped attribute values.
"""
import unittest
from datetime import datetime, timezone
from unittest import mock

from parsemodel.client.model import Model
from parsemodel.client.resolver import encode_value
from parsemodel.client.testing import InMemoryBackend
from parsemodel.core import config
from parsemodel.core.exceptions import UnresolvableTypeError


class User(Model):
    pass


class Author(Model):
    pass


class Book(Model):
    class_name = "LibraryBook"


class Shelf(Model):
    pass


class ResolveTests(unittest.TestCase):
    def setUp(self):
        self.backend = InMemoryBackend()
        config.configure(transport=self.backend)

    def tearDown(self):
        config.reset()

    def test_scalar_passes_through(self):
        shelf = Shelf._from_data({"objectId": "s1", "label": "fiction", "size": 3})
        self.assertEqual(shelf.label, "fiction")
        self.assertEqual(shelf.get("size"), 3)
        self.assertIsNone(shelf.get("missing"))

    def test_pointer_is_fetched_on_every_read(self):
        author = Author._from_data({"objectId": "a1"})
        shelf = Shelf._from_data(
            {"objectId": "s1", "curator": {"__type": "Pointer", "className": "Author", "objectId": "a1"}}
        )
        with mock.patch.object(Author, "find", return_value=author) as find:
            self.assertIs(shelf.curator, author)
            self.assertIs(shelf.get("curator"), author)
        self.assertEqual(find.call_args_list, [mock.call("a1"), mock.call("a1")])

    def test_pointer_through_backend(self):
        self.backend.seed("Author", {"objectId": "a1", "name": "Ann"})
        shelf = Shelf._from_data(
            {"objectId": "s1", "curator": {"__type": "Pointer", "className": "Author", "objectId": "a1"}}
        )
        curator = shelf.curator
        self.assertIsInstance(curator, Author)
        self.assertEqual(curator.name, "Ann")
        self.assertTrue(curator.persisted)

    def test_pointer_to_user(self):
        user = User._from_data({"objectId": "u1"})
        shelf = Shelf._from_data(
            {"objectId": "s1", "owner": {"__type": "Pointer", "className": "_User", "objectId": "u1"}}
        )
        with mock.patch.object(User, "find", return_value=user) as find:
            self.assertIs(shelf.owner, user)
        find.assert_called_once_with("u1")

    def test_pointer_uses_class_name_override(self):
        book = Book._from_data({"objectId": "b1"})
        shelf = Shelf._from_data(
            {"objectId": "s1", "top": {"__type": "Pointer", "className": "LibraryBook", "objectId": "b1"}}
        )
        with mock.patch.object(Book, "find", return_value=book):
            self.assertIs(shelf.top, book)

    def test_embedded_object_needs_no_call(self):
        shelf = Shelf._from_data(
            {
                "objectId": "s1",
                "curator": {"__type": "Object", "className": "Author", "objectId": "a1", "name": "Ann"},
            }
        )
        curator = shelf.curator
        self.assertIsInstance(curator, Author)
        self.assertEqual(curator.id, "a1")
        self.assertEqual(curator.name, "Ann")
        self.assertNotIn("__type", curator.attributes)
        self.assertEqual(self.backend.calls, [])

    def test_bytes_and_dates(self):
        shelf = Shelf._from_data(
            {
                "objectId": "s1",
                "blob": {"__type": "Bytes", "base64": "aGVsbG8="},
                "opened": {"__type": "Date", "iso": "2011-08-21T18:02:52.249Z"},
            }
        )
        self.assertEqual(shelf.blob, b"hello")
        self.assertEqual(shelf.opened, datetime(2011, 8, 21, 18, 2, 52, 249000, tzinfo=timezone.utc))

    def test_file_binds_attachment(self):
        shelf = Shelf._from_data(
            {"objectId": "s1", "photo": {"__type": "File", "name": "tfss-p.png", "url": "http://f/p.png"}}
        )
        photo = shelf.photo
        self.assertEqual((photo.name, photo.url), ("tfss-p.png", "http://f/p.png"))
        self.assertIs(shelf.photo, photo)

    def test_unresolvable_type(self):
        shelf = Shelf._from_data(
            {"objectId": "s1", "ghost": {"__type": "Pointer", "className": "Ghost", "objectId": "g1"}}
        )
        with self.assertRaises(UnresolvableTypeError) as ctx:
            shelf.ghost
        self.assertEqual(ctx.exception.class_name, "Ghost")


class EncodeValueTests(unittest.TestCase):
    def test_model_becomes_pointer(self):
        self.assertEqual(
            encode_value(Author._from_data({"objectId": "a1"})),
            {"__type": "Pointer", "className": "Author", "objectId": "a1"},
        )

    def test_user_pointer_uses_reserved_name(self):
        self.assertEqual(
            encode_value(User._from_data({"objectId": "u1"}))["className"], "_User"
        )

    def test_override_pointer(self):
        self.assertEqual(encode_value(Book._from_data({"objectId": "b1"}))["className"], "LibraryBook")

    def test_nested_values(self):
        value = encode_value(
            {"when": datetime(2020, 1, 1, tzinfo=timezone.utc), "data": [b"hi", 1]}
        )
        self.assertEqual(
            value,
            {
                "when": {"__type": "Date", "iso": "2020-01-01T00:00:00.000Z"},
                "data": [{"__type": "Bytes", "base64": "aGk="}, 1],
            },
        )

    def test_writes_encode_through_set(self):
        shelf = Shelf()
        shelf.curator = Author._from_data({"objectId": "a1"})
        self.assertEqual(
            shelf.pending["curator"],
            {"__type": "Pointer", "className": "Author", "objectId": "a1"},
        )


class UserCollectionTests(unittest.TestCase):
    def setUp(self):
        self.backend = InMemoryBackend()
        config.configure(transport=self.backend)

    def tearDown(self):
        config.reset()

    def test_users_endpoint(self):
        user = User(username="ann")
        self.assertTrue(user.save())
        self.assertEqual(self.backend.calls[0].path, "users")
        self.assertEqual(user.instance_path(), f"users/{user.id}")
        self.assertIn(user.id, self.backend.records["_User"])
