# -*- coding: utf-8 -*-

"""
annotator/config.py

Central configuration for the GeoLabel annotator. Viewport limits, band roles,
drawing rules and upload limits live here so that the viewer session, the
compositor and the collaborator boundary all agree on the same numbers.

Contents:
---------
1. VIEWPORT:
   - Scale limits for zoom and the step factors used by toolbar buttons and the
     mouse wheel.

2. BAND_ROLES:
   - Zero-based band indices used by the compositor. ``nir`` may be ``None``,
     meaning "band 4 when the raster has at least four bands, otherwise the
     last band".

3. DRAW:
   - Minimum bounding-box side (pixels, display space) below which a drag is
     treated as a click and nothing is created.
   - Polygon close tolerance: clicking within this distance of the first
     vertex closes the ring.

4. UPLOAD:
   - Extension allowlist and size cap enforced at the upload boundary. The
     upload route historically accepted only ``.tif``/``.tiff`` while the
     uploader widget also offered ``.cog``; both lists are kept so the boundary
     can reconcile them.

5. LABEL_COLORS / DEFAULT_LABEL:
   - Display palette per label class and the class assigned to freshly drawn
     boxes.

6. LOGGING:
   - Format and default level used by ``utils.configure_logging``.

Usage:
------
    from geolabel.annotator.config import VIEWPORT, BAND_ROLES

    mapper = CoordinateMapper(min_scale=VIEWPORT['min_scale'])

If these values ever need to come from a file, update this module to load them
rather than sprinkling overrides across callers.
"""

# ───────────────────────────────────────────────────────────────────────────────
# 1) VIEWPORT
# ───────────────────────────────────────────────────────────────────────────────
VIEWPORT = {
    'min_scale': 0.1,           # farthest zoom-out
    'max_scale': 5.0,           # closest zoom-in
    'zoom_in_factor': 1.2,      # toolbar "+"
    'zoom_out_factor': 0.8,     # toolbar "-"
    'wheel_in_factor': 1.1,     # wheel scrolled up (deltaY <= 0)
    'wheel_out_factor': 0.9,    # wheel scrolled down (deltaY > 0)
    'fit_padding': 20.0,        # pixels kept free on every side by fit_extent
}

# ───────────────────────────────────────────────────────────────────────────────
# 2) BAND ROLES (zero-based band indices)
# ───────────────────────────────────────────────────────────────────────────────
BAND_ROLES = {
    'red': 0,
    'green': 1,
    'blue': 2,
    'nir': None,                # None -> index 3 if present, else last band
}

# ───────────────────────────────────────────────────────────────────────────────
# 3) DRAWING
# ───────────────────────────────────────────────────────────────────────────────
DRAW = {
    'min_box_size': 10.0,           # px; both sides must exceed this
    'polygon_close_tolerance': 5.0, # px; click near the first vertex closes
    'default_confidence': 1.0,      # hand-drawn annotations are certain
}

# ───────────────────────────────────────────────────────────────────────────────
# 4) UPLOAD BOUNDARY
# ───────────────────────────────────────────────────────────────────────────────
UPLOAD = {
    'allowed_extensions': ('.tif', '.tiff', '.cog'),
    'server_allowed_extensions': ('.tif', '.tiff'),
    'max_size_mb': 100,
}

# ───────────────────────────────────────────────────────────────────────────────
# 5) LABEL PALETTE
# ───────────────────────────────────────────────────────────────────────────────
LABEL_COLORS = {
    'Building': '#3B82F6',
    'Vehicle': '#10B981',
    'Tree': '#F59E0B',
    'Road': '#8B5CF6',
    'Water': '#06B6D4',
    'Field': '#84CC16',
    'default': '#6B7280',
}

DEFAULT_LABEL = 'Building'

# ───────────────────────────────────────────────────────────────────────────────
# 6) LOGGING
# ───────────────────────────────────────────────────────────────────────────────
LOGGING = {
    'level': 'INFO',
    'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    'datefmt': '%Y-%m-%d %H:%M:%S',
}


def label_color(label: str) -> str:
    """Return the display color for ``label``, falling back to the default."""
    return LABEL_COLORS.get(label, LABEL_COLORS['default'])
