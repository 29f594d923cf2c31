from unittest import TestCase

from bus_tracking.eta.estimator import effective_speed, estimate_etas
from tests.helpers import NOW, lat_for_km, sample, waypoint


class EstimateEtasTests(TestCase):
    def setUp(self):
        self.waypoints = [
            waypoint("Start", 0.0, 0.0, kind="start"),
            waypoint("Library", lat_for_km(15), 0.0),
            waypoint("Hostel", lat_for_km(25), 0.0),
            waypoint("Campus", lat_for_km(40), 0.0, kind="end"),
        ]
        self.position = sample(0.0, 0.0, speed=30)

    def test_fifteen_km_at_thirty_kmh(self):
        etas = estimate_etas(self.position, 30, self.waypoints, 1, now=NOW)
        first = etas[0]
        self.assertEqual(first.waypoint_index, 1)
        self.assertEqual(first.waypoint_name, "Library")
        self.assertAlmostEqual(first.distance_km, 15.0)
        self.assertEqual(first.eta_minutes, 30)
        self.assertAlmostEqual((first.estimated_arrival - NOW).total_seconds(), 30 * 60, delta=1)

    def test_times_accumulate(self):
        etas = estimate_etas(self.position, 30, self.waypoints, 1, now=NOW)
        self.assertEqual([e.eta_minutes for e in etas], [30, 50, 80])
        self.assertEqual([e.distance_km for e in etas], [15.0, 10.0, 15.0])
        self.assertEqual([e.cumulative_distance_km for e in etas], [15.0, 25.0, 40.0])
        for prev, cur in zip(etas, etas[1:]):
            self.assertGreaterEqual(cur.eta_minutes, prev.eta_minutes)
            self.assertGreaterEqual(cur.estimated_arrival, prev.estimated_arrival)

    def test_zero_speed_uses_default(self):
        etas = estimate_etas(self.position, 0, self.waypoints, 1, now=NOW)
        self.assertEqual(etas[0].eta_minutes, 30)
        self.assertEqual(effective_speed(0), 30)
        self.assertEqual(effective_speed(None), 30)
        self.assertEqual(effective_speed(45), 45)

    def test_custom_default_speed(self):
        etas = estimate_etas(self.position, 0, self.waypoints, 1, now=NOW, default_speed_kmh=60)
        self.assertEqual(etas[0].eta_minutes, 15)

    def test_nothing_left(self):
        self.assertEqual(estimate_etas(self.position, 30, self.waypoints, 4, now=NOW), [])
        self.assertEqual(estimate_etas(self.position, 30, [], 0, now=NOW), [])
        self.assertEqual(estimate_etas(None, 30, self.waypoints, 1, now=NOW), [])
