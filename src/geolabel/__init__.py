"""GeoLabel: raster viewing and vector annotation for geospatial imagery."""

__version__ = '0.1.0'
