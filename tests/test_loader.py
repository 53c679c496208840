import json
import os
import tempfile
import threading
import unittest
from unittest import mock

import pandas as pd
import requests

from storyviz import config, loader
from storyviz.models import FlowRecord


def flow_row(year="2015", origin="YEM", dest="SAU", name="Saudi Arabia", refugees="", asylum="", other=""):
    return {
        "Year": year,
        "Country of Origin ISO": origin,
        "Country of Asylum ISO": dest,
        "Country of Asylum": name,
        "Refugees": refugees,
        "Asylum-seekers": asylum,
        "Other people in need of international protection": other,
    }


class PermissiveNumericTests(unittest.TestCase):
    def test_non_numeric_values_become_zero(self):
        out = loader.permissive_numeric(pd.Series(["12.5", "abc", "", "inf", "-3"]))
        self.assertEqual(out.tolist(), [12.5, 0.0, 0.0, 0.0, -3.0])
        self.assertEqual(str(out.dtype), "float64")

    def test_missing_column_is_all_zero(self):
        out = loader.permissive_numeric(None, pd.RangeIndex(3))
        self.assertEqual(out.tolist(), [0.0, 0.0, 0.0])


class IndicatorNormalizationTests(unittest.TestCase):
    def test_rows_are_sorted_and_coerced(self):
        df = pd.DataFrame({
            "Year": ["1991", "1990", "x"],
            "GDP": ["12", "10", "n/a"],
        })
        points = loader.normalize_indicator(df, value_column="GDP")
        self.assertEqual([(p.year, p.value) for p in points], [(0, 0.0), (1990, 10.0), (1991, 12.0)])
        for p in points:
            self.assertIsInstance(p.year, int)
            self.assertIsInstance(p.value, float)

    def test_duplicate_years_keep_first_row(self):
        df = pd.DataFrame({"Year": ["2000", "2000", "2001"], "GDP": ["1", "2", "3"]})
        with self.assertLogs("storyviz.loader", level="WARNING"):
            points = loader.normalize_indicator(df, value_column="GDP")
        self.assertEqual([(p.year, p.value) for p in points], [(2000, 1.0), (2001, 3.0)])

    def test_missing_value_column_normalizes_to_zero(self):
        df = pd.DataFrame({"Year": ["2000"]})
        points = loader.normalize_indicator(df, value_column="GDP")
        self.assertEqual(points[0].value, 0.0)


class FlowNormalizationTests(unittest.TestCase):
    def test_value_is_sum_of_protection_columns(self):
        df = pd.DataFrame([flow_row(refugees="100", asylum="20", other="3")])
        records = loader.normalize_flows(df)
        self.assertEqual(records, [FlowRecord(2015, "YEM", "SAU", "Saudi Arabia", 123.0)])

    def test_missing_and_bad_columns_count_as_zero(self):
        df = pd.DataFrame([flow_row(refugees="100", asylum="oops")]).drop(
            columns=["Other people in need of international protection"]
        )
        records = loader.normalize_flows(df)
        self.assertEqual(len(records), 1)
        self.assertEqual(records[0].value, 100.0)

    def test_filters_origin_destination_value_and_cutoff(self):
        df = pd.DataFrame([
            flow_row(refugees="10"),
            flow_row(origin="SOM", refugees="10"),
            flow_row(dest="YEM", refugees="10"),
            flow_row(refugees="0"),
            flow_row(year="2011", refugees="10"),
            flow_row(year="2016", dest=" OMN ", name=" Oman ", asylum="7"),
        ])
        records = loader.normalize_flows(df)
        self.assertEqual(
            [(r.year, r.dest_code, r.dest_name, r.value) for r in records],
            [(2015, "SAU", "Saudi Arabia", 10.0), (2016, "OMN", "Oman", 7.0)],
        )
        for r in records:
            self.assertEqual(r.origin_code, "YEM")
            self.assertNotEqual(r.dest_code, "YEM")
            self.assertGreater(r.value, 0)

    def test_year_range(self):
        records = [
            FlowRecord(2014, "YEM", "SAU", "", 1.0),
            FlowRecord(2012, "YEM", "SAU", "", 1.0),
            FlowRecord(2019, "YEM", "SAU", "", 1.0),
        ]
        self.assertEqual(loader.year_range(records), (2012, 2019))
        self.assertIsNone(loader.year_range([]))


class BoundaryParsingTests(unittest.TestCase):
    def test_ids_from_feature_or_properties(self):
        geo = {
            "type": "FeatureCollection",
            "features": [
                {"id": "yem", "properties": {"name": "Yemen"}, "geometry": {"type": "Polygon", "coordinates": []}},
                {"properties": {"id": "SAU"}, "geometry": None},
                {"properties": {"name": "Nowhere"}, "geometry": None},
            ],
        }
        boundaries = loader.parse_boundaries(geo)
        self.assertEqual(sorted(boundaries), ["SAU", "YEM"])
        self.assertEqual(boundaries["YEM"].name, "Yemen")
        self.assertEqual(boundaries["SAU"].geometry, {})


class SourceLoadingTests(unittest.TestCase):
    def setUp(self):
        loader.clear_cache()
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.addCleanup(loader.clear_cache)

    def _write(self, name, text):
        path = os.path.join(self.tmp.name, name)
        with open(path, "w", encoding="utf-8") as f:
            f.write(text)
        return path

    def test_missing_file_raises(self):
        with self.assertRaises(FileNotFoundError):
            loader.fetch_text(os.path.join(self.tmp.name, "nope.csv"))

    def test_url_sources_use_requests(self):
        resp = mock.Mock(text="Year,GDP\n1990,10\n")
        with mock.patch.object(loader.requests, "get", return_value=resp) as get:
            text = loader.fetch_text("https://example.org/gdp.csv", timeout=3)
        get.assert_called_once_with("https://example.org/gdp.csv", timeout=3)
        resp.raise_for_status.assert_called_once()
        self.assertIn("1990", text)

    def test_read_table_strips_headers_and_keeps_strings(self):
        path = self._write("gdp.csv", " Year ,GDP\n1990,\n1991,12.5\n")
        df = loader.read_table(path)
        self.assertEqual(list(df.columns), ["Year", "GDP"])
        self.assertEqual(df["GDP"].tolist(), ["", "12.5"])

    def test_indicator_pipeline_ready(self):
        path = self._write("gdp.csv", "Year,GDP\n1991,12\n1990,10\n")
        result = loader.load_indicator_sources(path)
        self.assertEqual(result.status, "ready")
        self.assertEqual([p.year for p in result.values["points"]], [1990, 1991])

    def test_flow_pipeline_waits_for_both_sources(self):
        csv_path = self._write(
            "migrations.csv",
            "Year,Country of Origin ISO,Country of Asylum ISO,Country of Asylum,Refugees\n2015,YEM,SAU,Saudi Arabia,2000\n",
        )
        geo_path = self._write("world.geojson", json.dumps({"type": "FeatureCollection", "features": [{"id": "YEM", "geometry": None}]}))
        result = loader.load_flow_sources(csv_path, geo_path)
        self.assertTrue(result.ok)
        self.assertEqual(len(result.values["records"]), 1)
        self.assertIn("YEM", result.values["boundaries"])

    def test_fetch_failure_becomes_error_status(self):
        geo_path = self._write("world.geojson", json.dumps({"features": []}))
        with self.assertLogs("storyviz.loader", level="WARNING"):
            result = loader.load_flow_sources(os.path.join(self.tmp.name, "missing.csv"), geo_path)
        self.assertEqual(result.status, "error")
        self.assertIn("records", result.error)

    def test_http_error_becomes_error_status(self):
        resp = mock.Mock()
        resp.raise_for_status.side_effect = requests.HTTPError("503")
        with mock.patch.object(loader.requests, "get", return_value=resp):
            with self.assertLogs("storyviz.loader", level="WARNING"):
                result = loader.load_indicator_sources("https://example.org/gdp.csv")
        self.assertEqual(result.status, "error")

    def test_timeout_leaves_loading_state(self):
        release = threading.Event()
        self.addCleanup(release.set)
        with self.assertLogs("storyviz.loader", level="WARNING"):
            result = loader.load_sources(
                {"fast": lambda: 1, "slow": lambda: release.wait(5)},
                timeout=0.05,
            )
        self.assertEqual(result.status, "error")
        self.assertIn("slow", result.error)

    def test_cache_is_bounded(self):
        paths = [self._write(f"t{i}.csv", "Year,GDP\n2000,1\n") for i in range(config.SOURCE_CACHE_LIMIT + 2)]
        for path in paths:
            loader.read_table(path)
        self.assertEqual(len(loader._SOURCE_CACHE), config.SOURCE_CACHE_LIMIT)
        self.assertNotIn(paths[0], loader._SOURCE_CACHE)
        self.assertIn(paths[-1], loader._SOURCE_CACHE)


if __name__ == "__main__":
    unittest.main()
