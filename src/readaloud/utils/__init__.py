"""
Utility modules for readaloud.

    - audio.py: content types and extensions for the two audio formats
    - text.py: whitespace cleanup for extracted articles, log previews
    - timeit.py: timing context manager
"""
