import json
import logging
import os

from measure import CalibrationRecord, KNOWN_WIDTH_INCHES, is_valid_calibration, validate_calibration

# ----------------------------------
# Calibration File Constants
# ----------------------------------
DEFAULT_CALIBRATION_FILE = 'calibration.json'


class CalibrationStore:
    """
    Key-value persistence for the single active calibration record.
    The record is written as one JSON document and replaced wholesale on save.
    """

    def __init__(self, path=DEFAULT_CALIBRATION_FILE):
        self.path = path

    def exists(self):
        return os.path.exists(self.path)

    def load(self):
        """
        Returns: CalibrationRecord, or None when nothing usable is stored.
        Unreadable or invalid files are logged and treated as absent.
        """
        if not self.exists():
            logging.info(f"No calibration file at {self.path}")
            return None
        try:
            with open(self.path, 'r') as f:
                data = json.load(f)
            record = _record_from_dict(data)
        except (OSError, ValueError, KeyError, TypeError, OverflowError) as e:
            logging.error(f"Error loading calibration from {self.path}: {e}")
            return None

        if not is_valid_calibration(record):
            logging.error(f"Ignoring invalid calibration in {self.path}: {record}")
            return None
        logging.info(f"Loaded calibration ({record.pixels_per_inch:.3f} px/in at "
                     f"{record.reference_distance_inches:g} in) from {self.path}")
        return record

    def save(self, record, known_width_inches=KNOWN_WIDTH_INCHES, num_samples=1):
        validate_calibration(record)
        payload = {
            'pixels_per_inch': record.pixels_per_inch,
            'reference_distance_inches': record.reference_distance_inches,
            'known_width_inches': known_width_inches,
            'num_samples': num_samples,
        }
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        tmp_path = self.path + '.tmp'
        with open(tmp_path, 'w') as f:
            json.dump(payload, f, indent=4)
        os.replace(tmp_path, self.path)
        logging.info(f"Calibration saved to {self.path}")

    def clear(self):
        if not self.exists():
            return
        os.remove(self.path)
        logging.info(f"Calibration cleared ({self.path} removed)")


def _record_from_dict(data):
    # Older files use the mobile app's camelCase keys
    if 'pixels_per_inch' in data:
        ppi = data['pixels_per_inch']
        distance = data['reference_distance_inches']
    else:
        ppi = data['pixelsPerInch']
        distance = data['calibrationDistance']
    for value in (ppi, distance):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeError(f"Calibration values must be numbers, got {value!r}")
    return CalibrationRecord(float(ppi), float(distance))
