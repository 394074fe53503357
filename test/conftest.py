"""
Test configuration for Logo interpreter tests
"""

import pytest
import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from rendering import RecordingCanvas


@pytest.fixture
def canvas():
  """A fresh recording canvas for each test"""
  return RecordingCanvas()
