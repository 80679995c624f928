"""System 3 engine components: encodings, configuration, file access, debug symbols, debugger front ends, MAKO music sequencer and screen model."""

__version__ = "0.1.0"