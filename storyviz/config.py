import logging
import os

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
ROOT_DIR = os.path.abspath(os.path.join(BASE_DIR, os.pardir))
DATA_DIR = os.getenv("DATA_DIR", os.path.join(ROOT_DIR, "data"))

INDICATOR_SOURCE = os.getenv("INDICATOR_SOURCE", os.path.join(DATA_DIR, "gdp.csv"))
FLOW_SOURCE = os.getenv("FLOW_SOURCE", os.path.join(DATA_DIR, "migrations.csv"))
BOUNDARY_SOURCE = os.getenv("BOUNDARY_SOURCE", os.path.join(DATA_DIR, "world.geojson"))

FETCH_TIMEOUT_SEC = float(os.getenv("FETCH_TIMEOUT_SEC", "15"))
SOURCE_CACHE_LIMIT = int(os.getenv("SOURCE_CACHE_LIMIT", "4"))
INSTANCE_LIMIT = int(os.getenv("INSTANCE_LIMIT", "64"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Indicator (time series)
YEAR_COLUMN = "Year"
INDICATOR_VALUE_COLUMN = os.getenv("INDICATOR_VALUE_COLUMN", "GDP")

# Flow (migration) table
FLOW_ORIGIN = os.getenv("FLOW_ORIGIN", "YEM")
FLOW_ORIGIN_COLUMN = "Country of Origin ISO"
FLOW_DEST_COLUMN = "Country of Asylum ISO"
FLOW_DEST_NAME_COLUMN = "Country of Asylum"
FLOW_VALUE_COLUMNS = [
    "Refugees",
    "Asylum-seekers",
    "Other people in need of international protection",
]
FLOW_MIN_YEAR = 2012
FLOW_MIN_VALUE = 500
FLOW_TOP_N = 30

# Line chart geometry
LINE_WIDTH = 800
LINE_HEIGHT = 400
LINE_MARGIN = {"top": 40, "right": 30, "bottom": 50, "left": 50}
Y_HEADROOM = 1.1
Y_TICKS = 6
LINE_COLOR = "#d32f2f"
LINE_Y_LABEL = "GDP (billion USD)"
LINE_X_LABEL = "Years"

# Flow map geometry
MAP_WIDTH = 620
MAP_HEIGHT = 320
PROJECTION_CENTER = (30.0, 30.0)
PROJECTION_SCALE = 350.0
ARC_BEND = 0.2
FLOW_WIDTH_DOMAIN = (0.0, 15000.0)
FLOW_WIDTH_RANGE = (0.5, 6.0)
ARC_COLOR = "#d32f2f"
ARC_HOVER_COLOR = "#b71c1c"
LAND_FILL = "#f5f5f5"
LAND_STROKE = "#bfbfbf"

# Timings (ms)
DRAW_IN_MS = 2000
FADE_IN_MS = 500
HOVER_MS = 200
PLAYBACK_INTERVAL_MS = 1000

# Tooltips
TOOLTIP_FONT_SIZE = 12
TOOLTIP_PADDING = 8
CURSOR_OFFSET = (12, -12)


def setup_logging() -> None:
    level = getattr(logging, LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    )
