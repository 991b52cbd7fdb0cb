import logging
import math
from dataclasses import dataclass
from typing import NewType

import numpy as np

# --- Configuration ---
KNOWN_WIDTH_INCHES = 3.375          # Short edge of a standard credit card
CALIBRATION_DISTANCE_INCHES = 36.0  # Card is held this far from the camera when calibrating
MIN_DISTANCE_INCHES = 12.0          # Distance slider bounds
MAX_DISTANCE_INCHES = 96.0
DEFAULT_DISTANCE_INCHES = 36.0
SAMPLE_SPREAD_WARNING = 0.05        # Warn when calibration samples vary by more than 5% of the mean

Pixels = NewType('Pixels', float)
Inches = NewType('Inches', float)


# --- Errors ---
class MeasurementError(ValueError):
    """Base class for precondition failures at the calibration/measurement boundary."""


class IncompleteInputError(MeasurementError):
    """Fewer than two markers were placed."""


class DegenerateCalibrationError(MeasurementError):
    """The calibration record is zero, negative or non-finite."""


class MissingCalibrationError(MeasurementError):
    """Measurement was attempted before any calibration was stored."""


class NonFiniteInputError(MeasurementError):
    """A coordinate or distance is NaN or infinite."""


# --- Data ---
@dataclass(frozen=True)
class MarkerPosition:
    x: float
    y: float


@dataclass(frozen=True)
class CalibrationRecord:
    pixels_per_inch: float
    reference_distance_inches: float


# --- Core computations ---
def pixel_distance(p1: MarkerPosition, p2: MarkerPosition) -> Pixels:
    """Calculates the Euclidean distance between two points."""
    return Pixels(math.hypot(p2.x - p1.x, p2.y - p1.y))


def compute_calibration(p1: MarkerPosition, p2: MarkerPosition,
                        reference_distance_inches: Inches,
                        known_width_inches: Inches) -> CalibrationRecord:
    """
    Builds a calibration record from two markers on the reference object.
    - p1, p2: markers on the two visible ends of the reference object.
    - reference_distance_inches: camera-to-reference distance when the markers were placed.
    - known_width_inches: physical width of the reference object.
    Returns: CalibrationRecord. Coincident markers give pixels_per_inch == 0,
    which validate_calibration() rejects. A zero known_width_inches raises
    ZeroDivisionError; callers pass a positive configured width.
    """
    pixels = pixel_distance(p1, p2)
    pixels_per_inch = pixels / known_width_inches
    return CalibrationRecord(pixels_per_inch, reference_distance_inches)


def convert_pixels_to_inches(pixel_span: Pixels, user_distance_inches: Inches,
                             reference_distance_inches: Inches,
                             pixels_per_inch: float) -> Inches:
    """
    Converts an on-screen pixel span to inches at the user's estimated distance.
    Apparent size shrinks linearly with distance, so the pixel density measured
    at the reference distance is rescaled before dividing.
    Zero pixels_per_inch or user_distance_inches raises ZeroDivisionError;
    both come from validated inputs and must be positive.
    """
    adjusted_pixels_per_inch = pixels_per_inch * (reference_distance_inches / user_distance_inches)
    return Inches(pixel_span / adjusted_pixels_per_inch)


def measure_between(p1, p2, user_distance_inches, calibration):
    """Length in inches between two markers using a stored calibration."""
    return convert_pixels_to_inches(pixel_distance(p1, p2), user_distance_inches,
                                    calibration.reference_distance_inches,
                                    calibration.pixels_per_inch)


def format_inches(inches):
    return f'{inches:.2f}"'


# --- Validation ---
def is_finite_marker(position):
    return math.isfinite(position.x) and math.isfinite(position.y)


def require_finite_marker(position):
    if not is_finite_marker(position):
        raise NonFiniteInputError(f"Marker has non-finite coordinates: ({position.x}, {position.y})")
    return position


def require_positive_distance(value, name='distance'):
    if not math.isfinite(value):
        raise NonFiniteInputError(f"{name} must be finite, got {value}")
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


def is_valid_calibration(record):
    if record is None:
        return False
    return all(math.isfinite(v) and v > 0
               for v in (record.pixels_per_inch, record.reference_distance_inches))


def validate_calibration(record):
    """Raises DegenerateCalibrationError unless both fields are finite and positive."""
    if record is None:
        raise MissingCalibrationError("No calibration available. Calibrate before measuring.")
    if not is_valid_calibration(record):
        raise DegenerateCalibrationError(
            f"Invalid calibration: pixels_per_inch={record.pixels_per_inch}, "
            f"reference_distance_inches={record.reference_distance_inches}")
    return record


def average_calibrations(records):
    """
    Averages several calibration samples taken at the same reference distance.
    - records: iterable of valid CalibrationRecord.
    Returns: CalibrationRecord with the mean pixels_per_inch.
    """
    records = list(records)
    if not records:
        raise IncompleteInputError("No calibration samples to average.")
    for record in records:
        validate_calibration(record)
    distances = {r.reference_distance_inches for r in records}
    if len(distances) != 1:
        raise ValueError(f"Calibration samples were taken at different distances: {sorted(distances)}")

    densities = np.array([r.pixels_per_inch for r in records], dtype=np.float64)
    mean_ppi = float(np.mean(densities))
    std_ppi = float(np.std(densities))
    logging.info(f"Averaged {len(records)} calibration samples: {mean_ppi:.3f} px/in (std {std_ppi:.3f})")
    if std_ppi > SAMPLE_SPREAD_WARNING * mean_ppi:
        logging.warning("High spread between calibration samples. Check marker placement on the reference object.")
    return CalibrationRecord(mean_ppi, records[0].reference_distance_inches)
