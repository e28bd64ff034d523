#!/usr/bin/env python3
"""
Deep Investigation Pipeline
===========================
Convenience wrapper around :mod:`deep_investigation.run`.

Usage:
    python run_pipeline.py "Your research topic" --width 3 --depth 2 --out-dir reports
"""
import sys

from deep_investigation.run import main

if __name__ == "__main__":
    sys.exit(main())
