# tracebridge/__init__.py
# Stack trace deobfuscation and cross-boundary exception transport.

__version__ = "1.0.0"
