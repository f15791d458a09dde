"""
SvgPdf - render SVG markup to a PDF sized exactly to the graphic.
"""

__version__ = "0.1.0"
