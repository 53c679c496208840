import math
import unittest

from storyviz import config
from storyviz.models import TimeSeriesPoint
from storyviz.scales import (
    LinearScale,
    MercatorProjection,
    SqrtScale,
    flow_width_scale,
    line_chart_scales,
    make_projection,
    ticks,
)


def square(lon, lat, half=1.0):
    return {
        "type": "Polygon",
        "coordinates": [[
            [lon - half, lat - half],
            [lon + half, lat - half],
            [lon + half, lat + half],
            [lon - half, lat + half],
            [lon - half, lat - half],
        ]],
    }


class LinearScaleTests(unittest.TestCase):
    def test_maps_and_inverts(self):
        s = LinearScale((1990, 2000), (50, 770))
        self.assertAlmostEqual(s(1990), 50)
        self.assertAlmostEqual(s(1995), 410)
        self.assertAlmostEqual(s.invert(770), 2000)

    def test_inverted_range_puts_large_values_higher(self):
        s = LinearScale((0, 10), (350, 40))
        self.assertLess(s(10), s(0))

    def test_nice_rounds_to_tick_boundaries(self):
        self.assertEqual(LinearScale((0, 13.2), (0, 1)).nice().domain, (0, 14))
        self.assertEqual(LinearScale((0, 0.96), (0, 1)).nice().domain, (0, 1))
        self.assertEqual(LinearScale((3, 97), (0, 1)).nice().domain, (0, 100))

    def test_zero_span_domain_maps_to_middle(self):
        s = LinearScale((5, 5), (0, 100))
        self.assertEqual(s(5), 50)
        self.assertEqual(s.ticks(), [5])

    def test_ticks(self):
        self.assertEqual(ticks(0, 14, 6), [0, 2, 4, 6, 8, 10, 12, 14])
        self.assertEqual(ticks(0, 1, 5), [0, 0.2, 0.4, 0.6, 0.8, 1])
        self.assertEqual(ticks(1990, 2020, 10), list(range(1990, 2021, 2)))
        self.assertEqual(ticks(0, 10, 0), [])


class SqrtScaleTests(unittest.TestCase):
    def test_flow_widths_are_sublinear_and_capped(self):
        widths = flow_width_scale()
        self.assertAlmostEqual(widths(0), 0.5)
        self.assertAlmostEqual(widths(15000), 6.0)
        self.assertAlmostEqual(widths(3750), 0.5 + 5.5 * 0.5)
        self.assertEqual(widths(90000), 6.0)
        self.assertGreater(widths(4000) - widths(0), widths(8000) - widths(4000))

    def test_unclamped_extrapolates(self):
        s = SqrtScale((0, 100), (0, 10), clamp=False)
        self.assertAlmostEqual(s(400), 20)


class ProjectionTests(unittest.TestCase):
    def test_center_lands_on_translate(self):
        projection = make_projection()
        x, y = projection(*config.PROJECTION_CENTER)
        self.assertAlmostEqual(x, config.MAP_WIDTH / 2)
        self.assertAlmostEqual(y, config.MAP_HEIGHT / 2)

    def test_east_is_right_and_north_is_up(self):
        projection = make_projection()
        x0, y0 = projection(30, 30)
        x1, y1 = projection(48, 15)
        self.assertGreater(x1, x0)
        self.assertGreater(y1, y0)
        self.assertAlmostEqual(x1 - x0, 350 * math.radians(18))

    def test_poles_stay_finite(self):
        x, y = MercatorProjection()(0, -90)
        self.assertTrue(math.isfinite(y))

    def test_centroid_of_square_is_near_its_projected_center(self):
        projection = make_projection()
        cx, cy = projection.centroid(square(48, 15.5))
        px, py = projection(48, 15.5)
        self.assertAlmostEqual(cx, px, places=3)
        self.assertAlmostEqual(cy, py, delta=0.5)

    def test_multipolygon_centroid_is_area_weighted(self):
        projection = MercatorProjection(center=(0, 0), scale=100, translate=(0, 0))
        big = square(10, 0, half=2)["coordinates"]
        small = square(-10, 0, half=0.5)["coordinates"]
        cx, _ = projection.centroid({"type": "MultiPolygon", "coordinates": [big, small]})
        self.assertGreater(cx, 0)

    def test_degenerate_and_empty_geometry(self):
        projection = make_projection()
        flat = {"type": "Polygon", "coordinates": [[[40, 20], [40, 20], [40, 20]]]}
        cx, cy = projection.centroid(flat)
        px, py = projection(40, 20)
        self.assertAlmostEqual(cx, px)
        self.assertAlmostEqual(cy, py)
        self.assertIsNone(projection.centroid({"type": "Polygon", "coordinates": []}))
        self.assertIsNone(projection.centroid({"type": "Point", "coordinates": [1, 2]}))

    def test_path_closes_each_ring(self):
        d = make_projection().path(square(45, 24))
        self.assertTrue(d.startswith("M"))
        self.assertTrue(d.endswith("Z"))


class LineChartScaleTests(unittest.TestCase):
    def test_two_point_scenario(self):
        points = [TimeSeriesPoint(1990, 10.0), TimeSeriesPoint(1991, 12.0)]
        scales = line_chart_scales(points)
        self.assertEqual(scales.x.domain, (1990, 1991))
        self.assertEqual(scales.raw_y_domain[0], 0)
        self.assertAlmostEqual(scales.raw_y_domain[1], 13.2)
        self.assertEqual(scales.y.domain, (0, 14))
        margin = config.LINE_MARGIN
        self.assertEqual(scales.x.range, (margin["left"], config.LINE_WIDTH - margin["right"]))
        self.assertEqual(scales.y.range, (config.LINE_HEIGHT - margin["bottom"], margin["top"]))

    def test_empty_series_does_not_raise(self):
        scales = line_chart_scales([])
        self.assertEqual(scales.x.domain, (0, 0))
        self.assertEqual(scales.y.domain, (0, 0))


if __name__ == "__main__":
    unittest.main()
