"""Tools for recording the version of Atropos"""
import importlib.metadata

# single source of truth for package version,
# see https://packaging.python.org/en/latest/single_source_version/
__version__ = importlib.metadata.version('atropos')
