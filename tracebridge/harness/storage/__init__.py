from .capture_loader import Capture, CaptureLoader
from .record_serializer import RecordSerializer
from .symbol_map_loader import SymbolMapLoader, load_symbol_map

__all__ = [
    "Capture",
    "CaptureLoader",
    "RecordSerializer",
    "SymbolMapLoader",
    "load_symbol_map",
]
