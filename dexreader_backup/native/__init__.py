from .exporter import NativeExporter
from .importer import NativeImporter

__all__ = ['NativeExporter', 'NativeImporter']
