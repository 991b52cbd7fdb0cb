import logging

from measure import (CALIBRATION_DISTANCE_INCHES, DEFAULT_DISTANCE_INCHES, KNOWN_WIDTH_INCHES,
                     DegenerateCalibrationError, IncompleteInputError, MissingCalibrationError,
                     average_calibrations, compute_calibration, format_inches, measure_between, require_finite_marker,
                     require_positive_distance, validate_calibration)

# Measurement session states
NO_CALIBRATION = 'no_calibration'
MARKERS_INCOMPLETE = 'markers_incomplete'
MARKERS_COMPLETE = 'markers_complete'

PLACEHOLDER_TEXT = '--'


class CalibrationSession:
    """
    Collects two taps on the reference object and turns them into a stored calibration.
    """

    def __init__(self, known_width_inches=KNOWN_WIDTH_INCHES,
                 reference_distance_inches=CALIBRATION_DISTANCE_INCHES):
        self.known_width_inches = require_positive_distance(known_width_inches, 'known width')
        self.reference_distance_inches = require_positive_distance(reference_distance_inches, 'reference distance')
        self._markers = []
        self._samples = []

    @property
    def markers(self):
        return tuple(self._markers)

    @property
    def is_complete(self):
        return len(self._markers) == 2

    def tap(self, position):
        # A third tap starts a new pair
        if len(self._markers) == 2:
            self._markers = [position]
        else:
            self._markers.append(position)

    def compute(self):
        if not self.is_complete:
            raise IncompleteInputError("Calibration incomplete: place markers on both ends of the reference object.")
        p1, p2 = (require_finite_marker(p) for p in self._markers)
        record = compute_calibration(p1, p2, self.reference_distance_inches, self.known_width_inches)
        if record.pixels_per_inch <= 0:
            raise DegenerateCalibrationError("Calibration markers coincide. Place them on opposite edges of the reference object.")
        return validate_calibration(record)

    @property
    def samples(self):
        return tuple(self._samples)

    def keep_sample(self):
        """Stores the current marker pair as one sample and clears the markers for the next."""
        record = self.compute()
        self._samples.append(record)
        self._markers = []
        return record

    def save(self, store):
        """
        Persists the calibration. A complete marker pair is kept as a final sample;
        several samples are averaged.
        """
        if self.is_complete:
            self.keep_sample()
        if not self._samples:
            raise IncompleteInputError("Calibration incomplete: place markers on both ends of the reference object.")
        if len(self._samples) == 1:
            record = self._samples[0]
        else:
            record = average_calibrations(self._samples)
        store.save(record, known_width_inches=self.known_width_inches, num_samples=len(self._samples))
        logging.info(f"Calibration: {record.pixels_per_inch:.2f} px/in at {record.reference_distance_inches:g} in")
        return record

    def reset(self, store):
        store.clear()
        self._markers = []
        self._samples = []


class MeasurementSession:
    """
    Live measurement state: an immutable calibration, two draggable markers and
    the distance slider value. length() is recomputed from scratch on each call.
    """

    def __init__(self, calibration=None, distance_inches=DEFAULT_DISTANCE_INCHES):
        if calibration is not None:
            validate_calibration(calibration)
        self._calibration = calibration
        self._markers = [None, None]
        self._distance_inches = require_positive_distance(distance_inches)

    @property
    def calibration(self):
        return self._calibration

    @property
    def markers(self):
        return tuple(self._markers)

    @property
    def distance_inches(self):
        return self._distance_inches

    @property
    def state(self):
        if self._calibration is None:
            return NO_CALIBRATION
        if None in self._markers:
            return MARKERS_INCOMPLETE
        return MARKERS_COMPLETE

    def set_marker(self, index, position):
        if index not in (0, 1):
            raise IndexError(f"Marker index must be 0 or 1, got {index}")
        self._markers[index] = require_finite_marker(position)

    def set_distance(self, inches):
        self._distance_inches = require_positive_distance(inches)

    def clear_markers(self):
        self._markers = [None, None]

    def recalibrated(self, calibration):
        """Returns a new session using `calibration`, keeping markers and distance."""
        session = MeasurementSession(calibration, self._distance_inches)
        session._markers = list(self._markers)
        return session

    def length(self):
        if self.state != MARKERS_COMPLETE:
            return None
        p1, p2 = self._markers
        return measure_between(p1, p2, self._distance_inches, self._calibration)

    def require_length(self):
        if self._calibration is None:
            raise MissingCalibrationError("Calibration required. Please calibrate before measuring.")
        if None in self._markers:
            raise IncompleteInputError("Place both markers to measure.")
        return self.length()

    def display_text(self):
        inches = self.length()
        if inches is None:
            return PLACEHOLDER_TEXT
        return format_inches(inches)
