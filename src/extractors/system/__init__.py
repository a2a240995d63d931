"""
System extractors - Windows system artifact analysis.

This module provides:
- Prefetch: batch processing of *.pf files, including volume shadow copies

Usage:
    from extractors.system.prefetch import BatchProcessor, Discoverer, SccaDecoder
"""

from __future__ import annotations
