"""IR normalizers — format-specific repair passes, then one generic pass."""
