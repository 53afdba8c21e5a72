"""Parser and template capabilities built from catalog definitions."""
