"""
Root conftest.
Chain, registry and treasury-world fixtures live in tests/fixtures.
"""

import logging
import sys
from pathlib import Path

# Ensure src on path
sys.path.insert(0, str(Path(__file__).parent / "src"))

logger = logging.getLogger(__name__)
