"""Sphinx configuration for the FeelGood API reference."""

from __future__ import annotations

import sys
from datetime import datetime
from pathlib import Path

# -- Path setup --------------------------------------------------------------

PROJECT_ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(PROJECT_ROOT / "src"))

# -- Project information -----------------------------------------------------

project = "FeelGood"
copyright = f"{datetime.now():%Y}, FeelGood"
author = "FeelGood Team"
release = "0.1.0"

# -- General configuration ---------------------------------------------------

extensions = [
    "sphinx.ext.autodoc",
    "sphinx.ext.autosummary",
    "sphinx.ext.napoleon",
]

autosummary_generate = True
napoleon_google_docstring = True
napoleon_numpy_docstring = False

# Documentation builds do not need cloud credentials or the client library.
autodoc_mock_imports = ["google"]

exclude_patterns: list[str] = ["_build"]

language = "en"

# -- Options for HTML output -------------------------------------------------

html_theme = "alabaster"

# -- Autodoc configuration ---------------------------------------------------

autodoc_default_options = {
    "members": True,
    "show-inheritance": True,
}

autodoc_typehints = "description"
