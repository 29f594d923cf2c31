from datetime import timedelta
from unittest import TestCase

from bus_tracking.eta.progress import compute_progress, route_length_km
from bus_tracking.eta.resolver import build_waypoints
from tests.helpers import NOW, eta, lat_for_km, meridian_route, sample, waypoint


class ComputeProgressTests(TestCase):
    def setUp(self):
        self.waypoints = build_waypoints(meridian_route())

    def test_route_length(self):
        self.assertAlmostEqual(route_length_km(self.waypoints), 30.0, places=6)

    def test_partial_segment_counts(self):
        summary = compute_progress(self.waypoints, sample(lat_for_km(15), 0.0), 1)
        self.assertEqual(summary.percent_complete, 50)
        self.assertAlmostEqual(summary.traveled_distance_km, 15.0)
        self.assertAlmostEqual(summary.total_distance_km, 30.0)
        self.assertEqual(summary.current_waypoint_name, "Library")
        self.assertEqual(summary.next_waypoint_name, "Hostel")

    def test_at_start(self):
        summary = compute_progress(self.waypoints, sample(0.0, 0.0), 0)
        self.assertEqual(summary.percent_complete, 0)
        self.assertEqual(summary.current_waypoint_name, "Depot")

    def test_at_final_waypoint(self):
        summary = compute_progress(self.waypoints, sample(lat_for_km(30), 0.0), 3)
        self.assertEqual(summary.percent_complete, 100)
        self.assertIsNone(summary.next_waypoint_name)

    def test_never_above_hundred(self):
        # Overshooting the route along the last leg
        summary = compute_progress(self.waypoints, sample(lat_for_km(60), 0.0), 2)
        self.assertEqual(summary.percent_complete, 100)

    def test_stop_rows(self):
        etas = [eta(2, NOW + timedelta(minutes=12), "Hostel"), eta(3, NOW + timedelta(minutes=30), "Campus")]
        summary = compute_progress(self.waypoints, sample(lat_for_km(15), 0.0), 1, etas)
        rows = summary.per_stop_display
        self.assertEqual([row.status for row in rows], ["passed", "current", "upcoming", "upcoming"])
        self.assertIsNone(rows[1].eta_minutes)
        self.assertEqual(rows[2].eta_minutes, 5)
        self.assertEqual(rows[2].eta_display, "5m")
        self.assertIsNone(rows[1].eta_display)
        self.assertEqual(rows[2].estimated_arrival, "08:12")
        self.assertEqual(rows[3].estimated_arrival, "08:30")
        self.assertEqual(rows[2].distance, "1.0 km")

    def test_degenerate_input(self):
        self.assertEqual(compute_progress([], sample(0, 0), 0).percent_complete, 0)
        summary = compute_progress(self.waypoints, None, 1)
        self.assertEqual(summary.percent_complete, 0)
        self.assertEqual(summary.current_waypoint_name, "Library")
        same_place = [waypoint("A", 1, 1, kind="start"), waypoint("B", 1, 1, kind="end")]
        self.assertEqual(compute_progress(same_place, sample(1, 1), 0).percent_complete, 0)
