"""Decoders for x86 machine-check events and kernel ring-buffer pages."""

__version__ = "0.1.0"