#!/usr/bin/env python3
"""Measure glyph widths and size scale for a web font catalog.

Usage:
    python MeasureWebFontMetrics.py --characters -i fonts.json -o google-fonts
    python MeasureWebFontMetrics.py --scale -i fonts.json -o google-fonts.json
"""

from glyphmeter.cli import main

if __name__ == "__main__":
    main()
