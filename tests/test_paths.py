import re
import unittest

from storyviz.paths import Path, flow_arc, monotone_x

NUMBER = re.compile(r"-?\d+(?:\.\d+)?")


class PathTests(unittest.TestCase):
    def test_commands_serialize_compactly(self):
        path = Path().move_to(0, 0).line_to(10.5, -2).quadratic_curve_to(1 / 3, 0, 4, 4)
        self.assertEqual(str(path), "M0,0L10.5,-2Q0.333,0,4,4")

    def test_length_of_closed_square(self):
        path = Path().move_to(0, 0).line_to(10, 0).line_to(10, 10).line_to(0, 10).close_path()
        self.assertTrue(str(path).endswith("Z"))
        self.assertAlmostEqual(path.length(), 40.0)

    def test_length_of_flat_quadratic_equals_chord(self):
        path = Path().move_to(0, 0).quadratic_curve_to(5, 0, 10, 0)
        self.assertAlmostEqual(path.length(), 10.0)


class MonotoneTests(unittest.TestCase):
    def test_empty_and_single_point(self):
        self.assertEqual(str(monotone_x([])), "")
        single = monotone_x([(5, 5)])
        self.assertEqual(str(single), "M5,5Z")
        self.assertEqual(single.length(), 0.0)

    def test_two_points_is_straight(self):
        path = monotone_x([(0, 0), (30, 40)])
        self.assertEqual(str(path), "M0,0L30,40")
        self.assertAlmostEqual(path.length(), 50.0)

    def test_cubic_segments_between_points(self):
        d = str(monotone_x([(0, 0), (1, 1), (2, 0)]))
        self.assertTrue(d.startswith("M0,0C"))
        self.assertEqual(d.count("C"), 2)

    def test_no_overshoot_on_monotone_data(self):
        points = [(0, 0), (1, 10), (2, 10), (3, 20)]
        d = str(monotone_x(points))
        ys = [float(v) for v in NUMBER.findall(d)[1::2]]
        self.assertGreaterEqual(min(ys), 0)
        self.assertLessEqual(max(ys), 20)
        # a flat run stays flat
        self.assertIn("C1.333,10,1.667,10,2,10", d)


class FlowArcTests(unittest.TestCase):
    def test_control_point_bows_above_chord(self):
        d = str(flow_arc((0, 100), (100, 100)))
        self.assertEqual(d, "M0,100Q50,80,100,100")

    def test_bow_is_upward_in_either_direction(self):
        d = str(flow_arc((100, 100), (0, 100)))
        self.assertEqual(d, "M100,100Q50,80,0,100")

    def test_bend_scales_with_chord(self):
        d = str(flow_arc((0, 0), (0, 50), bend=0.5))
        # vertical chord bows sideways by half its length
        self.assertIn("Q", d)
        cx = float(NUMBER.findall(d.split("Q")[1])[0])
        self.assertAlmostEqual(abs(cx), 25.0, places=3)

    def test_coincident_endpoints(self):
        self.assertEqual(str(flow_arc((3, 4), (3, 4))), "M3,4Q3,4,3,4")


if __name__ == "__main__":
    unittest.main()
