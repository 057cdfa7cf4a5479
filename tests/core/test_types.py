"""
Tests for the tagged value types exchanged with the backend.
"""
import unittest
from datetime import date, datetime, timedelta, timezone

from parsemodel.core.types import (Bytes, Date, EmbeddedObject, FileRef,
                                   Pointer, Scalar, decode,
                                   normalize_class_name, parse_timestamp)


class DecodeTests(unittest.TestCase):
    def test_untagged_values_are_scalars(self):
        for raw in ("plain", 42, None, [1, 2], {"nested": True}):
            self.assertEqual(decode(raw), Scalar(raw))

    def test_unknown_tag_is_scalar(self):
        raw = {"__type": "GeoPoint", "latitude": 1.0, "longitude": 2.0}
        self.assertEqual(decode(raw), Scalar(raw))

    def test_pointer(self):
        raw = {"__type": "Pointer", "className": "Post", "objectId": "p1"}
        self.assertEqual(decode(raw), Pointer("Post", "p1"))

    def test_embedded_object_strips_tag_and_class(self):
        raw = {"__type": "Object", "className": "Post", "objectId": "p1", "title": "a"}
        self.assertEqual(decode(raw), EmbeddedObject("Post", {"objectId": "p1", "title": "a"}))

    def test_bytes(self):
        value = decode({"__type": "Bytes", "base64": "aGVsbG8="})
        self.assertIsInstance(value, Bytes)
        self.assertEqual(value.decode(), b"hello")

    def test_file(self):
        raw = {"__type": "File", "name": "f.png", "url": "http://x/f.png"}
        self.assertEqual(decode(raw), FileRef("f.png", "http://x/f.png"))


class PointerTests(unittest.TestCase):
    def test_encode(self):
        self.assertEqual(
            Pointer("Post", "p1").encode(),
            {"__type": "Pointer", "className": "Post", "objectId": "p1"},
        )


class DateTests(unittest.TestCase):
    def test_from_datetime_uses_millisecond_utc(self):
        value = datetime(2011, 8, 21, 18, 2, 52, 249731, tzinfo=timezone.utc)
        self.assertEqual(Date.from_datetime(value).iso, "2011-08-21T18:02:52.249Z")

    def test_naive_datetime_is_treated_as_utc(self):
        self.assertEqual(
            Date.from_datetime(datetime(2020, 1, 2, 3, 4, 5)).iso,
            "2020-01-02T03:04:05.000Z",
        )

    def test_offset_datetime_is_converted(self):
        tz = timezone(timedelta(hours=2))
        self.assertEqual(
            Date.from_datetime(datetime(2020, 1, 2, 3, 0, 0, tzinfo=tz)).iso,
            "2020-01-02T01:00:00.000Z",
        )

    def test_date_becomes_midnight(self):
        self.assertEqual(Date.from_datetime(date(2020, 5, 6)).iso, "2020-05-06T00:00:00.000Z")

    def test_to_datetime(self):
        self.assertEqual(
            Date("2011-08-21T18:02:52.249Z").to_datetime(),
            datetime(2011, 8, 21, 18, 2, 52, 249000, tzinfo=timezone.utc),
        )

    def test_encode(self):
        self.assertEqual(Date("x").encode(), {"__type": "Date", "iso": "x"})


class HelperTests(unittest.TestCase):
    def test_parse_timestamp_empty(self):
        self.assertIsNone(parse_timestamp(None))
        self.assertIsNone(parse_timestamp(""))

    def test_parse_timestamp_without_zone_is_utc(self):
        self.assertEqual(
            parse_timestamp("2020-01-01T00:00:00"),
            datetime(2020, 1, 1, tzinfo=timezone.utc),
        )

    def test_normalize_user(self):
        self.assertEqual(normalize_class_name("_User"), "User")
        self.assertEqual(normalize_class_name("Post"), "Post")
