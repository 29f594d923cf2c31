import tempfile
from pathlib import Path
from unittest import TestCase

from bus_tracking.utils.data_manager import load_data, load_routes, save_data
from tests.helpers import meridian_route


class DataManagerTests(TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.data_dir = Path(self.tmp.name) / "data"

    def tearDown(self):
        self.tmp.cleanup()

    def test_missing_file_starts_empty(self):
        self.assertEqual(load_data("buses", self.data_dir), [])
        self.assertTrue((self.data_dir / "buses.json").exists())

    def test_saved_data_is_loaded_back(self):
        buses = [{"id": 1, "bus_number": "GIT-001", "route_id": 1}]
        save_data("buses", buses, self.data_dir)
        self.assertEqual(load_data("buses", self.data_dir), buses)

    def test_load_routes_skips_invalid_records(self):
        save_data("routes", [meridian_route().model_dump(), {"id": 2, "name": "no endpoints"}], self.data_dir)
        routes = load_routes(self.data_dir)
        self.assertEqual(list(routes), [1])
        self.assertEqual(routes[1].stops[0].name, "Library")
