"""
Test configuration for token stream tests
"""

import pytest
import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from token_input import Input


@pytest.fixture
def make_input():
  """Build a fresh Input from source text"""
  def make(text: str) -> Input:
    return Input.from_text(text)
  return make


@pytest.fixture
def drain():
  """Render every remaining token of a stream as text"""
  def drain_stream(stream):
    return [str(token) for token in iter(stream.next_token, None)]
  return drain_stream
