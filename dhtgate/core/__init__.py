"""
Gateway core: identifier derivation, value codec, error taxonomy and the
username directory adapter.
"""
