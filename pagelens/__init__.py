"""Page rendering service.

This package renders third-party web pages through named parsers and
templates fetched from a remote catalog, with a clean separation between
the catalog (registry, sources, scheduler) and request-time rendering
(dispatcher, pipeline).
"""
