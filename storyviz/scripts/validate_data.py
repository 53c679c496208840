import argparse
import sys
from collections import defaultdict
from pathlib import Path
from typing import Dict, List, Tuple

import pandas as pd

ROOT_DIR = Path(__file__).resolve().parents[2]
sys.path.append(str(ROOT_DIR))

from storyviz import config, loader  # noqa: E402


def sample_values(values: List[str], limit: int = 10) -> List[str]:
    return values[:limit]


def check_indicator(source: str) -> Tuple[Dict[str, str], List[str]]:
    df = loader.read_table(source)
    issues: List[str] = []
    summary: Dict[str, str] = {"rows": str(len(df))}

    for col in (config.YEAR_COLUMN, config.INDICATOR_VALUE_COLUMN):
        if col not in df.columns:
            issues.append(f"missing_column:{col}")

    years = loader.permissive_numeric(df.get(config.YEAR_COLUMN), df.index)
    values = pd.to_numeric(df.get(config.INDICATOR_VALUE_COLUMN, pd.Series(dtype=str)), errors="coerce")
    coerced = int(values.isna().sum())
    if coerced:
        issues.append(f"values_coerced_to_zero:{coerced}")
    zero_years = int((years == 0).sum())
    if zero_years:
        issues.append(f"unparsable_years:{zero_years}")
    duplicates = int(years.duplicated().sum())
    if duplicates:
        issues.append(f"duplicate_years:{duplicates}")

    points = loader.normalize_indicator(df)
    if points:
        summary["years"] = f"{points[0].year}-{points[-1].year}"
    summary["points"] = str(len(points))
    return summary, issues


def check_flows(flow_source: str, boundary_source: str) -> Tuple[Dict[str, str], List[str]]:
    df = loader.read_table(flow_source)
    issues: List[str] = []
    summary: Dict[str, str] = {"rows": str(len(df))}

    required = [
        config.YEAR_COLUMN,
        config.FLOW_ORIGIN_COLUMN,
        config.FLOW_DEST_COLUMN,
        config.FLOW_DEST_NAME_COLUMN,
    ]
    for col in required + config.FLOW_VALUE_COLUMNS:
        if col not in df.columns:
            issues.append(f"missing_column:{col}")

    records = loader.normalize_flows(df)
    summary["kept"] = str(len(records))
    summary["dropped"] = str(len(df) - len(records))
    bounds = loader.year_range(records)
    if bounds:
        summary["years"] = f"{bounds[0]}-{bounds[1]}"

    boundaries = loader.parse_boundaries(loader.read_geojson(boundary_source))
    summary["boundaries"] = str(len(boundaries))
    if config.FLOW_ORIGIN not in boundaries:
        issues.append(f"origin_missing_in_boundaries:{config.FLOW_ORIGIN}")
    missing = sorted({r.dest_code for r in records if r.dest_code not in boundaries})
    if missing:
        issues.append(f"missing_in_boundaries:{len(missing)} sample={sample_values(missing)}")
    return summary, issues


def main_cli(warn_only: bool) -> int:
    issue_count = 0
    issue_map = defaultdict(list)

    checks = {
        "indicator": lambda: check_indicator(config.INDICATOR_SOURCE),
        "flow": lambda: check_flows(config.FLOW_SOURCE, config.BOUNDARY_SOURCE),
    }
    for key, check in checks.items():
        try:
            summary, issues = check()
        except (FileNotFoundError, ValueError) as exc:
            summary, issues = {}, [f"unreadable:{exc}"]
        line = key + "".join(f" {k}={v}" for k, v in summary.items())
        print(line)
        if issues:
            issue_count += len(issues)
            issue_map[key].extend(issues)

    if issue_map:
        print("\nIssues:")
        for key, issues in issue_map.items():
            print(f"- {key}")
            for issue in issues:
                print(f"  - {issue}")

    if issue_count and not warn_only:
        return 1
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Validate indicator, flow and boundary data.")
    parser.add_argument(
        "--warn-only",
        action="store_true",
        help="Always exit 0 even if issues are found.",
    )
    args = parser.parse_args()
    raise SystemExit(main_cli(args.warn_only))
