import argparse
import logging
import sys

import cv2

from calibration_store import DEFAULT_CALIBRATION_FILE, CalibrationStore
from measure import (CALIBRATION_DISTANCE_INCHES, DEFAULT_DISTANCE_INCHES, KNOWN_WIDTH_INCHES,
                     MAX_DISTANCE_INCHES, MIN_DISTANCE_INCHES, IncompleteInputError, MarkerPosition,
                     MeasurementError, pixel_distance)
from measure_session import CalibrationSession, MeasurementSession


# ----------------------------------
# Argument Helpers
# ----------------------------------
def parse_point(text):
    """Parses "x,y" into a MarkerPosition."""
    try:
        x, y = (float(v) for v in text.split(','))
    except ValueError:
        raise argparse.ArgumentTypeError(f"Point must be two comma-separated numbers (x,y), got '{text}'")
    return MarkerPosition(x, y)


def slider_distance(text):
    """Distance in inches, restricted to the slider range."""
    try:
        value = float(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Distance must be a number, got '{text}'")
    if not MIN_DISTANCE_INCHES <= value <= MAX_DISTANCE_INCHES:
        raise argparse.ArgumentTypeError(
            f"Distance must be between {MIN_DISTANCE_INCHES:g} and {MAX_DISTANCE_INCHES:g} inches, got {value:g}")
    return value


def check_markers_in_image(image_path, markers):
    """
    Loads the captured image only to verify the markers fall inside its frame.
    Returns: (height, width) of the image.
    """
    img = cv2.imread(image_path, cv2.IMREAD_GRAYSCALE)
    if img is None:
        raise FileNotFoundError(image_path)
    h, w = img.shape[:2]
    for p in markers:
        if not (0 <= p.x < w and 0 <= p.y < h):
            raise MeasurementError(f"Marker ({p.x:g}, {p.y:g}) lies outside the {w}x{h} image {image_path}")
    return h, w


# ----------------------------------
# Commands
# ----------------------------------
def run_calibrate(args, store, log_callback):
    log_callback("--- Starting Calibration ---")
    if len(args.pt1) != len(args.pt2):
        raise IncompleteInputError(f"Every --pt1 needs a matching --pt2 ({len(args.pt1)} vs {len(args.pt2)}).")
    if args.image:
        check_markers_in_image(args.image, args.pt1 + args.pt2)
    session = CalibrationSession(args.known_width, args.distance)
    for i, (p1, p2) in enumerate(zip(args.pt1, args.pt2), start=1):
        session.tap(p1)
        session.tap(p2)
        log_callback(f"Sample {i}: reference object pixel width {pixel_distance(p1, p2):.2f} pixels")
        session.keep_sample()
    record = session.save(store)
    log_callback(f"Pixels per inch at {record.reference_distance_inches:g} in: {record.pixels_per_inch:.2f} "
                 f"({len(session.samples)} sample(s))")
    log_callback("Calibration saved. You can now measure objects at different distances.")
    return 0


def run_measure(args, store, log_callback):
    log_callback("--- Starting Measurement ---")
    if args.image:
        check_markers_in_image(args.image, (args.pt1, args.pt2))
    session = MeasurementSession(store.load(), args.distance)
    session.set_marker(0, args.pt1)
    session.set_marker(1, args.pt2)
    session.require_length()
    log_callback(f"Marker span: {pixel_distance(args.pt1, args.pt2):.2f} pixels at {args.distance:g} in")
    log_callback(f"Measured: {session.display_text()}")
    return 0


def run_show(args, store, log_callback):
    record = store.load()
    if record is None:
        log_callback("No calibration stored. Run 'calibrate' first.")
        return 1
    log_callback(f"Pixels per inch: {record.pixels_per_inch:.4f}")
    log_callback(f"Reference distance: {record.reference_distance_inches:g} in")
    return 0


def run_reset(args, store, log_callback):
    store.clear()
    log_callback("Calibration data has been cleared.")
    return 0


# ----------------------------------
# Main Execution
# ----------------------------------
def build_parser():
    parser = argparse.ArgumentParser(description="Calibrate against a reference card and measure distant objects.")
    parser.add_argument('--calibration', default=DEFAULT_CALIBRATION_FILE,
                        help=f'Calibration file. Default: {DEFAULT_CALIBRATION_FILE}')
    parser.add_argument('--log_level', default='INFO', choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Logging level. Default: INFO')

    subparsers = parser.add_subparsers(dest='command', help='Available commands.', required=True)

    parser_calibrate = subparsers.add_parser('calibrate', help='Calibrate from two points on the reference object.')
    parser_calibrate.add_argument('--pt1', required=True, type=parse_point, action='append',
                                  help='First end of the reference object, x,y (px). Repeat with --pt2 to average several samples.')
    parser_calibrate.add_argument('--pt2', required=True, type=parse_point, action='append',
                                  help='Second end of the reference object, x,y (px)')
    parser_calibrate.add_argument('--known_width', type=float, default=KNOWN_WIDTH_INCHES,
                                  help=f'Reference object width (in). Default: {KNOWN_WIDTH_INCHES}')
    parser_calibrate.add_argument('--distance', type=float, default=CALIBRATION_DISTANCE_INCHES,
                                  help=f'Distance to the reference object (in). Default: {CALIBRATION_DISTANCE_INCHES:g}')
    parser_calibrate.add_argument('--image', default=None, help='Captured image the points were picked on (bounds check only).')

    parser_measure = subparsers.add_parser('measure', help='Measure between two points using the stored calibration.')
    parser_measure.add_argument('--pt1', required=True, type=parse_point, help='First marker, x,y (px)')
    parser_measure.add_argument('--pt2', required=True, type=parse_point, help='Second marker, x,y (px)')
    parser_measure.add_argument('--distance', type=slider_distance, default=DEFAULT_DISTANCE_INCHES,
                                help=f'Estimated distance to the object (in), {MIN_DISTANCE_INCHES:g}-{MAX_DISTANCE_INCHES:g}. '
                                     f'Default: {DEFAULT_DISTANCE_INCHES:g}')
    parser_measure.add_argument('--image', default=None, help='Captured image the points were picked on (bounds check only).')

    subparsers.add_parser('show', help='Print the stored calibration.')
    subparsers.add_parser('reset', help='Delete the stored calibration.')
    return parser


COMMANDS = {
    'calibrate': run_calibrate,
    'measure': run_measure,
    'show': run_show,
    'reset': run_reset,
}


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level), format='%(asctime)s %(levelname)s: %(message)s')

    def cli_log_callback(message):
        print(message)

    store = CalibrationStore(args.calibration)
    try:
        result = COMMANDS[args.command](args, store, cli_log_callback)
    except (ValueError, FileNotFoundError) as e:
        # MeasurementError is a ValueError
        logging.error(f"{args.command} failed: {e}")
        return 1
    return result


if __name__ == "__main__":
    sys.exit(main())
