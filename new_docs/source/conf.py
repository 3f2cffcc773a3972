from pathlib import Path

# Configuration file for the Sphinx documentation builder.
#
# For the full list of built-in configuration values, see the documentation:
# https://www.sphinx-doc.org/en/master/usage/configuration.html

# -- Project information -----------------------------------------------------
# https://www.sphinx-doc.org/en/master/usage/configuration.html#project-information

project = 'LexEase'
copyright = '2025, LexEase contributors'
author = 'LexEase contributors'
release = 'v0.1'

# ---- Paths ----
# repo_root = new_docs/source/../../
REPO_ROOT = Path(__file__).resolve().parents[2]

# -- General configuration ---------------------------------------------------
# https://www.sphinx-doc.org/en/master/usage/configuration.html#general-configuration

extensions = [
    "autoapi.extension",
    "sphinx.ext.napoleon",        # Google/NumPy docstrings
    "sphinx.ext.viewcode",        # source links
    "sphinx.ext.intersphinx",
    "sphinx_copybutton",
    "sphinx_design",
    "sphinx.ext.autosummary",
]

extensions += ["myst_parser"]

source_suffix = {
    ".rst": "restructuredtext",
    ".md": "markdown",
}

myst_enable_extensions = [
    "colon_fence",
    "deflist",
    "linkify",
]

templates_path = ['_templates']
exclude_patterns = []

language = 'en'

html_show_sourcelink = True

intersphinx_mapping = {
    "python": ("https://docs.python.org/3", None),
}

# ── AutoAPI (Python package) ────────────────────────────────────────────────
autoapi_type = "python"
autoapi_dirs = [str(REPO_ROOT / "lexease")]
autoapi_add_toctree_entry = False
add_module_names = False
autoapi_keep_files = True
autoapi_python_use_implicit_namespaces = True
autoapi_root = "lexease_api"
autoapi_options = [
    "members",
    "undoc-members",
    "show-inheritance",
    "show-module-summary",
    "special-members",
    "imported-members",
    "show-source",
]
autoapi_member_order = "bysource"
autoapi_python_class_content = "class"
autoapi_generate_api_docs = True
autoapi_keep_module_path = False
autoapi_ignore = [
    "*__pycache__*",
    "*docs_for_drafts*",
]

# ---- Theme ----
html_theme = "sphinx_rtd_theme"
html_title = project
html_static_path = ["_static"]

# Napoleon (Google/NumPy docstrings)
napoleon_google_docstring = True
napoleon_numpy_docstring = True
