from datetime import datetime, timedelta
from unittest import TestCase

from bus_tracking.eta.ingest import average_speed_kmh, ingest_sample, parse_timestamp
from tests.helpers import NOW, lat_for_km, sample


class IngestSampleTests(TestCase):
    def test_accepts_short_keys(self):
        result = ingest_sample({"lat": 18.52, "lng": 73.85, "speed": 22.5}, now=NOW)
        self.assertEqual((result.latitude, result.longitude), (18.52, 73.85))
        self.assertEqual(result.speed_kmh, 22.5)
        self.assertEqual(result.timestamp, NOW)

    def test_converts_metres_per_second(self):
        result = ingest_sample({"latitude": 1, "longitude": 2, "speed_mps": 10}, now=NOW)
        self.assertAlmostEqual(result.speed_kmh, 36.0)

    def test_missing_or_negative_speed_is_zero(self):
        self.assertEqual(ingest_sample({"latitude": 1, "longitude": 2}, now=NOW).speed_kmh, 0)
        self.assertEqual(ingest_sample({"latitude": 1, "longitude": 2, "speed": -4}, now=NOW).speed_kmh, 0)

    def test_rejects_bad_coordinates(self):
        self.assertIsNone(ingest_sample(None))
        self.assertIsNone(ingest_sample({}))
        self.assertIsNone(ingest_sample({"latitude": 91, "longitude": 0}))
        self.assertIsNone(ingest_sample({"latitude": "north", "longitude": 0}))
        self.assertIsNone(ingest_sample({"latitude": 10}))

    def test_timestamps(self):
        millis = 1_760_000_000_000
        self.assertEqual(parse_timestamp(millis), datetime.fromtimestamp(millis / 1000))
        self.assertEqual(parse_timestamp(millis / 1000), datetime.fromtimestamp(millis / 1000))
        self.assertEqual(parse_timestamp("2026-10-18T07:55:00"), datetime(2026, 10, 18, 7, 55))
        self.assertEqual(parse_timestamp("yesterday", now=NOW), NOW)
        self.assertIsNone(parse_timestamp("2026-10-18T07:55:00Z").tzinfo)


class AverageSpeedTests(TestCase):
    def test_distance_over_elapsed_time(self):
        history = [
            sample(0.0, 0.0, timestamp=NOW),
            sample(lat_for_km(10), 0.0, timestamp=NOW + timedelta(minutes=30)),
        ]
        self.assertAlmostEqual(average_speed_kmh(history), 20.0, places=6)

    def test_needs_two_samples_and_elapsed_time(self):
        self.assertEqual(average_speed_kmh([]), 0)
        self.assertEqual(average_speed_kmh([sample(0, 0)]), 0)
        self.assertEqual(average_speed_kmh([sample(0, 0), sample(1, 0)]), 0)
