import unittest
from unittest.mock import Mock

import requests

from config import Settings
from data_sources.error_handling import BackendUnavailableError, FacilityQueryFailed
from hospitals.fallback import get_fallback_hospitals
from hospitals.locator import HospitalLocator
from hospitals.models import HospitalRecord
from hospitals.remote import HospitalApiClient

DOWNTOWN = (40.7128, -74.0060)


def _api_item(name="Remote General", distance_km=1.2, lat=40.72, lng=-74.0, fields=("General",)):
    return {
        "name": name,
        "distance_km": distance_km,
        "address": "1 Remote Way",
        "lat": lat,
        "lng": lng,
        "fields": list(fields),
        "google_maps_url": f"https://www.google.com/maps/dir/?api=1&destination={lat},{lng}",
    }


class TestHospitalLocator(unittest.TestCase):
    def test_without_source_uses_fallback(self):
        hospitals = HospitalLocator().find_nearby(*DOWNTOWN)
        self.assertEqual(hospitals, get_fallback_hospitals(DOWNTOWN, 5000))

    def test_source_result_is_returned(self):
        record = HospitalRecord(name="Live", address="", latitude=40.72, longitude=-74.0, distance_km=0.9)
        source = Mock()
        source.get_nearby_hospitals.return_value = [record]

        hospitals = HospitalLocator(source).find_nearby(40.7128, -74.006, 2000)

        self.assertEqual(hospitals, [record])
        source.get_nearby_hospitals.assert_called_once_with((40.7128, -74.006), 2000)

    def test_source_empty_list_is_not_replaced(self):
        source = Mock()
        source.get_nearby_hospitals.return_value = []
        self.assertEqual(HospitalLocator(source).find_nearby(*DOWNTOWN), [])

    def test_api_error_degrades_to_fallback(self):
        for error in (BackendUnavailableError("down", status_code=503), FacilityQueryFailed("timeout")):
            with self.subTest(error=type(error).__name__):
                source = Mock()
                source.get_nearby_hospitals.side_effect = error
                hospitals = HospitalLocator(source).find_nearby(*DOWNTOWN, radius_m=5000)
                self.assertEqual([h.hospital_id for h in hospitals], ["1", "5", "4"])

    def test_unexpected_error_degrades_to_fallback(self):
        source = Mock()
        source.get_nearby_hospitals.side_effect = RuntimeError("bug")
        hospitals = HospitalLocator(source).find_nearby(*DOWNTOWN)
        self.assertEqual(len(hospitals), 3)

    def test_from_settings_requires_base_url_and_token(self):
        configured = Settings(hospital_api_base_url="https://api.example")
        self.assertIsNone(HospitalLocator.from_settings(configured).source)
        self.assertIsNone(HospitalLocator.from_settings(Settings(), access_token="tok").source)

        locator = HospitalLocator.from_settings(configured, access_token="tok")
        self.assertIsInstance(locator.source, HospitalApiClient)
        self.assertEqual(locator.source.access_token, "tok")


class TestHospitalApiClient(unittest.TestCase):
    def _client(self, session):
        return HospitalApiClient("https://api.example/", "tok", session=session)

    def test_sends_bearer_token_and_params(self):
        resp = Mock(status_code=200)
        resp.json.return_value = [_api_item()]
        session = Mock()
        session.get.return_value = resp

        hospitals = self._client(session).get_nearby_hospitals((40.7128, -74.006), 5000.0)

        args, kwargs = session.get.call_args
        self.assertEqual(args[0], "https://api.example/api/hospitals")
        self.assertEqual(kwargs["params"], {"lat": 40.7128, "lng": -74.006, "radius": 5000})
        self.assertEqual(kwargs["headers"]["Authorization"], "Bearer tok")
        self.assertEqual(hospitals[0].name, "Remote General")
        self.assertEqual(hospitals[0].distance_km, 1.2)

    def test_non_200_raises(self):
        session = Mock()
        session.get.return_value = Mock(status_code=401)
        with self.assertRaises(BackendUnavailableError) as ctx:
            self._client(session).get_nearby_hospitals(DOWNTOWN, 5000)
        self.assertEqual(ctx.exception.status_code, 401)

    def test_transport_error_raises(self):
        session = Mock()
        session.get.side_effect = requests.exceptions.ConnectionError("refused")
        with self.assertRaises(BackendUnavailableError):
            self._client(session).get_nearby_hospitals(DOWNTOWN, 5000)

    def test_malformed_payload_raises(self):
        resp = Mock(status_code=200)
        resp.json.return_value = [{"name": "No coordinates"}]
        session = Mock()
        session.get.return_value = resp
        with self.assertRaises(BackendUnavailableError):
            self._client(session).get_nearby_hospitals(DOWNTOWN, 5000)

    def test_locator_falls_back_when_remote_fails(self):
        session = Mock()
        session.get.return_value = Mock(status_code=500)
        locator = HospitalLocator(self._client(session))
        self.assertEqual(len(locator.find_nearby(*DOWNTOWN)), 3)


if __name__ == "__main__":
    unittest.main()
