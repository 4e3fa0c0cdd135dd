"""Shared helpers (XML scanning) used by parsers and sniffers."""
