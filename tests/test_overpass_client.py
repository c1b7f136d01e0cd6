import unittest
from unittest.mock import Mock

import requests

from config import Settings
from data_sources.error_handling import FacilityQueryFailed
from data_sources.overpass_client import (
    OverpassClient,
    QueryThrottle,
    build_hospital_query,
    parse_elements,
)
from hospitals.normalizer import extract_name


def _response(status_code=200, payload=None, text=""):
    resp = Mock()
    resp.status_code = status_code
    resp.text = text
    resp.json.return_value = payload if payload is not None else {}
    return resp


def _client(session, throttle=None):
    return OverpassClient(
        base_url="https://overpass.example/api/interpreter",
        session=session,
        throttle=throttle or QueryThrottle(min_interval=0.0),
    )


class TestBuildQuery(unittest.TestCase):
    def test_selects_all_kinds_with_center_output(self):
        query = build_hospital_query(40.7128, -74.006, 5000)
        self.assertTrue(query.startswith("[out:json]"))
        for kind in ("node", "way", "relation"):
            self.assertIn(f'{kind}["amenity"="hospital"](around:5000,40.7128,-74.006);', query)
        self.assertTrue(query.endswith("out center;"))


class TestOverpassClient(unittest.TestCase):
    def test_posts_form_encoded_query_with_timeout(self):
        session = Mock()
        session.post.return_value = _response(payload={"elements": []})
        _client(session).fetch_nearby_facilities(40.0, -74.0, 1000)

        args, kwargs = session.post.call_args
        self.assertEqual(args[0], "https://overpass.example/api/interpreter")
        self.assertEqual(kwargs["data"], {"data": build_hospital_query(40.0, -74.0, 1000)})
        self.assertEqual(kwargs["timeout"], 30.0)
        self.assertEqual(kwargs["headers"]["Content-Type"], "application/x-www-form-urlencoded")

    def test_returns_parsed_elements(self):
        payload = {"elements": [
            {"type": "node", "id": 1, "lat": 40.1, "lon": -74.1, "tags": {"name": "A"}},
            {"type": "way", "id": 2, "center": {"lat": 40.2, "lon": -74.2}, "tags": {"name": "B"}},
        ]}
        session = Mock()
        session.post.return_value = _response(payload=payload)
        elements = _client(session).fetch_nearby_facilities(40.0, -74.0, 1000)

        self.assertEqual([e.kind for e in elements], ["node", "way"])
        self.assertEqual(elements[1].center, (40.2, -74.2))

    def test_missing_elements_key_is_empty(self):
        session = Mock()
        session.post.return_value = _response(payload={"version": 0.6})
        self.assertEqual(_client(session).fetch_nearby_facilities(40.0, -74.0, 1000), [])

    def test_non_2xx_raises(self):
        session = Mock()
        session.post.return_value = _response(status_code=504, text="Gateway Timeout")
        with self.assertRaises(FacilityQueryFailed) as ctx:
            _client(session).fetch_nearby_facilities(40.0, -74.0, 1000)
        self.assertEqual(ctx.exception.status_code, 504)
        self.assertEqual(ctx.exception.api_name, "overpass")
        self.assertIn("504", str(ctx.exception))

    def test_timeout_raises_without_retry(self):
        session = Mock()
        session.post.side_effect = requests.exceptions.Timeout("read timed out")
        with self.assertRaises(FacilityQueryFailed):
            _client(session).fetch_nearby_facilities(40.0, -74.0, 1000)
        self.assertEqual(session.post.call_count, 1)

    def test_connection_error_raises(self):
        session = Mock()
        session.post.side_effect = requests.exceptions.ConnectionError("refused")
        with self.assertRaises(FacilityQueryFailed) as ctx:
            _client(session).fetch_nearby_facilities(40.0, -74.0, 1000)
        self.assertIn("refused", str(ctx.exception))

    def test_invalid_json_raises(self):
        resp = _response()
        resp.json.side_effect = ValueError("Expecting value")
        session = Mock()
        session.post.return_value = resp
        with self.assertRaises(FacilityQueryFailed):
            _client(session).fetch_nearby_facilities(40.0, -74.0, 1000)

    def test_rate_limit_widens_throttle(self):
        throttle = QueryThrottle(min_interval=0.5, sleep=Mock())
        session = Mock()
        session.post.return_value = _response(status_code=429)
        with self.assertRaises(FacilityQueryFailed) as ctx:
            _client(session, throttle).fetch_nearby_facilities(40.0, -74.0, 1000)
        self.assertEqual(ctx.exception.status_code, 429)
        self.assertAlmostEqual(throttle.current_interval, 0.75)

    def test_from_settings(self):
        settings = Settings(overpass_url="https://mirror.example/api", overpass_timeout=12.0,
                            overpass_min_interval=1.0)
        client = OverpassClient.from_settings(settings)
        self.assertEqual(client.base_url, "https://mirror.example/api")
        self.assertEqual(client.timeout, 12.0)
        self.assertEqual(client.throttle.base_interval, 1.0)


class TestParseElements(unittest.TestCase):
    def test_ignores_non_object_entries(self):
        parsed = parse_elements({"elements": [{"type": "node", "lat": 1, "lon": 2}, "junk", None]})
        self.assertEqual(len(parsed), 1)

    def test_non_dict_payload(self):
        self.assertEqual(parse_elements(["not", "a", "dict"]), [])

    def test_non_list_elements_raise(self):
        for elements in (5, "nodes", {"type": "node"}):
            with self.subTest(elements=elements):
                with self.assertRaises(FacilityQueryFailed):
                    parse_elements({"elements": elements})

    def test_null_elements_is_empty(self):
        self.assertEqual(parse_elements({"elements": None}), [])

    def test_null_tag_values_are_dropped(self):
        [element] = parse_elements({"elements": [
            {"type": "node", "lat": 1, "lon": 2, "tags": {"name": None, "amenity": "hospital"}},
        ]})
        self.assertEqual(element.tags, {"amenity": "hospital"})
        self.assertIsNone(extract_name(element))

    def test_client_reports_malformed_elements(self):
        session = Mock()
        session.post.return_value = _response(payload={"elements": 5})
        with self.assertRaises(FacilityQueryFailed):
            _client(session).fetch_nearby_facilities(40.0, -74.0, 1000)


class TestQueryThrottle(unittest.TestCase):
    def test_spaces_consecutive_queries(self):
        now = [100.0]
        slept = []

        def fake_sleep(seconds):
            slept.append(seconds)
            now[0] += seconds

        throttle = QueryThrottle(min_interval=0.5, jitter=0.0, clock=lambda: now[0], sleep=fake_sleep)
        self.assertEqual(throttle.wait(), 0.0)
        now[0] += 0.2
        self.assertAlmostEqual(throttle.wait(), 0.3)
        self.assertEqual(len(slept), 1)

    def test_no_wait_after_interval_elapsed(self):
        now = [0.0]
        sleep = Mock()
        throttle = QueryThrottle(min_interval=0.5, clock=lambda: now[0], sleep=sleep)
        throttle.wait()
        now[0] += 1.0
        throttle.wait()
        sleep.assert_not_called()

    def test_penalize_is_capped_and_relax_returns_to_base(self):
        throttle = QueryThrottle(min_interval=1.0, max_multiplier=2.0)
        for _ in range(5):
            throttle.penalize()
        self.assertEqual(throttle.current_interval, 2.0)
        for _ in range(20):
            throttle.relax()
        self.assertEqual(throttle.current_interval, 1.0)


if __name__ == "__main__":
    unittest.main()
