"""Tachiyomi/Mihon backup compatibility."""

from .exporter import MihonExporter
from .importer import MihonImporter

__all__ = ['MihonExporter', 'MihonImporter']
