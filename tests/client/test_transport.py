"""
Tests for the HTTP transport, driven through httpx.MockTransport.
"""
import json
import unittest

import httpx

from parsemodel.client.transport import (HTTPTransport, TransportResponse,
                                         require_ok)
from parsemodel.core.config import ClientConfig
from parsemodel.core.exceptions import TransportError


class HTTPTransportTests(unittest.TestCase):
    def setUp(self):
        self.requests = []
        self.response = httpx.Response(201, json={"objectId": "X1"})
        self.config = ClientConfig(
            base_url="https://backend.test/1/",
            app_id="app",
            rest_key="rest",
            master_key="master",
        )

    def make_transport(self, handler=None, cfg=None):
        def record(request):
            self.requests.append(request)
            return self.response

        client = httpx.Client(transport=httpx.MockTransport(handler or record))
        return HTTPTransport(cfg or self.config, client=client)

    def test_json_request(self):
        resp = self.make_transport().request("POST", "classes/Post", json={"title": "a"})

        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.data, {"objectId": "X1"})
        self.assertTrue(resp.ok)
        request = self.requests[0]
        self.assertEqual(str(request.url), "https://backend.test/1/classes/Post")
        self.assertEqual(json.loads(request.content), {"title": "a"})
        self.assertEqual(request.headers["X-Parse-Application-Id"], "app")
        self.assertEqual(request.headers["X-Parse-REST-API-Key"], "rest")
        self.assertNotIn("X-Parse-Master-Key", request.headers)

    def test_query_params(self):
        self.make_transport().request("GET", "classes/Post", params={"limit": 1, "order": "-createdAt"})
        url = self.requests[0].url
        self.assertEqual(url.params["limit"], "1")
        self.assertEqual(url.params["order"], "-createdAt")

    def test_raw_upload_with_content_type(self):
        self.make_transport().request(
            "POST", "files/a.png", content=b"\x89PNG", headers={"Content-Type": "image/png"}
        )
        request = self.requests[0]
        self.assertEqual(request.content, b"\x89PNG")
        self.assertEqual(request.headers["Content-Type"], "image/png")

    def test_master_key(self):
        self.make_transport().request("DELETE", "files/a.png", use_master_key=True)
        headers = self.requests[0].headers
        self.assertEqual(headers["X-Parse-Master-Key"], "master")
        self.assertNotIn("X-Parse-REST-API-Key", headers)

    def test_missing_master_key(self):
        transport = self.make_transport(cfg=ClientConfig(app_id="app", rest_key="rest"))
        with self.assertRaises(TransportError):
            transport.request("DELETE", "files/a.png", use_master_key=True)
        self.assertEqual(self.requests, [])

    def test_connection_error_is_wrapped(self):
        def fail(request):
            raise httpx.ConnectError("connection refused", request=request)

        with self.assertRaises(TransportError) as ctx:
            self.make_transport(handler=fail).request("GET", "classes/Post")
        self.assertIsInstance(ctx.exception.__cause__, httpx.ConnectError)

    def test_non_json_body(self):
        self.response = httpx.Response(502, text="Bad gateway")
        resp = self.make_transport().request("GET", "classes/Post")
        self.assertEqual(resp.data, "Bad gateway")
        self.assertFalse(resp.ok)

    def test_empty_body(self):
        self.response = httpx.Response(200)
        self.assertIsNone(self.make_transport().request("DELETE", "classes/Post/1").data)


class RequireOkTests(unittest.TestCase):
    def test_success_passes(self):
        require_ok(TransportResponse(201, {}))
        require_ok(TransportResponse(200, None))

    def test_validation_error_raises(self):
        with self.assertRaises(TransportError) as ctx:
            require_ok(TransportResponse(400, {"code": 137, "error": "dup"}))
        self.assertEqual(ctx.exception.status_code, 400)
        self.assertEqual(ctx.exception.backend_code, 137)

    def test_other_errors_raise(self):
        with self.assertRaises(TransportError) as ctx:
            require_ok(TransportResponse(403, {"code": 119, "error": "forbidden"}), context="Save")
        self.assertEqual(ctx.exception.status_code, 403)
        self.assertEqual(ctx.exception.backend_code, 119)
        self.assertIn("forbidden", str(ctx.exception))
        self.assertIn("Save", str(ctx.exception))

    def test_missing_body_uses_status(self):
        with self.assertRaises(TransportError) as ctx:
            require_ok(TransportResponse(502, None))
        self.assertIn("502", str(ctx.exception))
