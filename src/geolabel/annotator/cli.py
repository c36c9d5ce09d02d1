"""Command line preview of a raster and its annotations.

Usage:
    geolabel-preview scene.tif -o preview.png --mode ndvi
    geolabel-preview scene.tif --labels labels.json --geojson labels.geojson
"""
import argparse
import json
import logging
import sys

from PIL import Image

from geolabel.annotator import codec
from geolabel.annotator.compositor import BandMode, composite_with_fallback
from geolabel.annotator.errors import AnnotatorError
from geolabel.annotator.raster import decode_raster_file
from geolabel.annotator.utils import configure_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog='geolabel-preview', description=__doc__.splitlines()[0])
    p.add_argument('raster', help='GeoTIFF/TIFF file to decode')
    p.add_argument('-o', '--output', help='write the composited image as PNG')
    p.add_argument('--mode', choices=[m.value for m in BandMode], default=BandMode.RGB.value)
    p.add_argument('--nir', type=int, default=None, help='zero-based NIR band index')
    p.add_argument('--red', type=int, default=None, help='zero-based red band index')
    p.add_argument('--labels', help='interchange JSON file with annotations')
    p.add_argument('--geojson', help='write labels as a GeoJSON FeatureCollection')
    p.add_argument('--log-level', default=None)
    return p


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    roles = {}
    if args.nir is not None:
        roles['nir'] = args.nir
    if args.red is not None:
        roles['red'] = args.red

    try:
        image = decode_raster_file(args.raster)
    except (OSError, AnnotatorError) as e:
        logger.error('cannot load %s: %s', args.raster, e)
        return 2

    print(json.dumps(image.metadata(), indent=2))

    if args.output:
        rgba, used = composite_with_fallback(image, args.mode, roles or None)
        Image.fromarray(rgba).save(args.output)
        logger.info('wrote %s preview to %s', used.value, args.output)

    if args.labels:
        with open(args.labels, 'r', encoding='utf-8') as fh:
            try:
                annotations, errors = codec.loads(fh.read())
            except AnnotatorError as e:
                logger.error('cannot read labels %s: %s', args.labels, e)
                return 2
        if errors:
            logger.warning('%d label record(s) skipped', len(errors))
        if args.geojson:
            fc = codec.to_feature_collection(annotations, image)
            with open(args.geojson, 'w', encoding='utf-8') as fh:
                json.dump(fc, fh, indent=2)
            logger.info('wrote %d feature(s) to %s', len(fc['features']), args.geojson)
    return 0


if __name__ == '__main__':
    sys.exit(main())
