"""
Test configuration for Parley tests
"""

import pytest
import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from parsing import create_parser
from semantics import create_analyzer
from interpreter import create_vm


@pytest.fixture
def parser():
  return create_parser()


@pytest.fixture
def analyzer():
  return create_analyzer()


@pytest.fixture
def vm():
  return create_vm()


@pytest.fixture
def compile_source(parser, analyzer):
  """Turn Parley source text into analyzed statements"""
  def compile_fn(text):
    return analyzer.analyze(parser.parse_string(text))
  return compile_fn
