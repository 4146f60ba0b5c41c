from django.test import SimpleTestCase

from hemolink.geo import distance_between, distance_km, has_location


class DistanceTestCase(SimpleTestCase):
    """Haversine distance"""

    def test_same_point_is_zero(self):
        for lat, lng in [(0, 0), (12.9716, 77.5946), (-33.86, 151.2)]:
            self.assertEqual(distance_km(lat, lng, lat, lng), 0)

    def test_symmetry(self):
        pairs = [
            ((0, 0), (0, 0.001)),
            ((12.9716, 77.5946), (13.0358, 77.597)),
            ((51.5074, -0.1278), (48.8566, 2.3522)),
            ((-1.2921, 36.8219), (0.3476, 32.5825)),
        ]
        for (a_lat, a_lng), (b_lat, b_lng) in pairs:
            self.assertAlmostEqual(
                distance_km(a_lat, a_lng, b_lat, b_lng),
                distance_km(b_lat, b_lng, a_lat, a_lng),
                places=9,
            )

    def test_small_distances(self):
        # 0.001 degree of longitude on the equator is about 111 m
        self.assertAlmostEqual(distance_km(0, 0, 0, 0.001), 0.1112, places=3)
        self.assertAlmostEqual(distance_km(0, 0, 0, 0.1), 11.12, places=1)

    def test_one_degree_latitude(self):
        self.assertAlmostEqual(distance_km(0, 0, 1, 0), 111.19, places=1)

    def test_out_of_range_coordinates_are_accepted(self):
        self.assertIsInstance(distance_km(100, 200, -100, -200), float)

    def test_distance_between_points(self):
        a = {"lat": 0.0, "lng": 0.0}
        b = {"lat": 0.0, "lng": 0.001}
        self.assertAlmostEqual(distance_between(a, b), distance_km(0, 0, 0, 0.001))

    def test_has_location(self):
        self.assertTrue(has_location({"lat": 0.0, "lng": 0.0}))
        self.assertFalse(has_location(None))
        self.assertFalse(has_location({}))
        self.assertFalse(has_location({"lat": 1.0}))
