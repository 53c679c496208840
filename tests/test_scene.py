import unittest

from storyviz.scene import Scene, Shape


class SceneTests(unittest.TestCase):
    def setUp(self):
        self.scene = Scene(200, 100)

    def test_static_layer_is_built_once(self):
        calls = []

        def build():
            calls.append(1)
            return [Shape(id="land", tag="path", attrs={"d": "M0,0Z"})]

        self.scene.ensure_static("map", build)
        self.scene.ensure_static("map", build)
        self.assertEqual(calls, [1])
        self.assertEqual(self.scene.builds["map"], 1)
        with self.assertRaises(ValueError):
            self.scene.replace("map", [])

    def test_replace_returns_removed_shapes(self):
        first = [Shape(id="a", tag="circle"), Shape(id="b", tag="circle")]
        self.scene.replace("dots", first)
        removed = self.scene.replace("dots", [Shape(id="c", tag="circle")])
        self.assertEqual([s.id for s in removed], ["a", "b"])
        self.assertIsNone(self.scene.find("a"))
        self.assertEqual(self.scene.count("dots", tag="circle"), 1)

    def test_find_walks_children(self):
        group = Shape(id="g", tag="g", children=[Shape(id="inner", tag="rect")])
        self.scene.replace("layer", [group])
        self.assertIs(self.scene.find("inner"), group.children[0])
        self.assertEqual(self.scene.count(), 2)

    def test_svg_escapes_text_and_attributes(self):
        self.scene.replace("labels", [
            Shape(id="t", tag="text", attrs={"x": 1.25, "title": 'a"b', "skip": None}, text="<GDP & co>"),
        ])
        svg = self.scene.to_svg()
        self.assertTrue(svg.startswith("<svg"))
        self.assertIn('viewBox="0 0 200 100"', svg)
        self.assertIn('<g class="labels">', svg)
        self.assertIn("&lt;GDP &amp; co&gt;", svg)
        self.assertIn('x="1.25"', svg)
        self.assertIn("title='a\"b'", svg)
        self.assertNotIn("skip", svg)

    def test_to_dict_lists_layers_in_order(self):
        self.scene.ensure_static("map", lambda: [])
        self.scene.add_layer("arrows")
        out = self.scene.to_dict()
        self.assertEqual([layer["name"] for layer in out["layers"]], ["map", "arrows"])
        self.assertTrue(out["layers"][0]["static"])

    def test_clear(self):
        self.scene.replace("dots", [Shape(id="a", tag="circle")])
        self.scene.clear()
        self.assertEqual(self.scene.count(), 0)
        self.assertFalse(self.scene.has_layer("dots"))


if __name__ == "__main__":
    unittest.main()
