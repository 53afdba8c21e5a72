"""Parser and template catalogs and their refresh."""
