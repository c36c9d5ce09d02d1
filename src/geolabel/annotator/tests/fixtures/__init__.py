"""Shared test fixtures: interchange records shaped like the external services return them."""


def suggestion_records():
    """Records as the labeling-suggestion service sends them (boxes as four corners)."""
    return [
        {
            'type': 'bbox',
            'label': 'building',
            'confidence': 0.85,
            'coordinates': [[100, 100], [200, 100], [200, 200], [100, 200]],
        },
        {
            'type': 'polygon',
            'label': 'road',
            'confidence': 0.92,
            'coordinates': [[50, 150], [150, 140], [200, 160], [180, 170], [80, 165]],
        },
        {
            'type': 'bbox',
            'label': 'vehicle',
            'confidence': 0.78,
            'coordinates': [[300, 250], [350, 250], [350, 280], [300, 280]],
        },
    ]


def change_records():
    """Change-detection results: closed GeoJSON rings plus a classification."""
    return [
        {
            'type': 'addition',
            'geometry': {'type': 'Polygon',
                         'coordinates': [[[100, 100], [150, 100], [150, 150], [100, 150], [100, 100]]]},
            'confidence': 0.87,
            'description': 'New building construction',
        },
        {
            'type': 'removal',
            'geometry': {'type': 'Polygon',
                         'coordinates': [[[200, 200], [250, 200], [250, 250], [200, 250], [200, 200]]]},
            'confidence': 0.91,
            'description': 'Vegetation removal',
        },
    ]
