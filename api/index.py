import os
import sys

ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

from storyviz.config import setup_logging  # noqa: E402
from storyviz.main import app  # noqa: E402

setup_logging()

# Vercel Python runtime will use `app` as the ASGI entrypoint.
