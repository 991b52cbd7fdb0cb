import math

import pytest

from measure import (CalibrationRecord, DegenerateCalibrationError, IncompleteInputError,
                     MarkerPosition, MissingCalibrationError, NonFiniteInputError,
                     average_calibrations, compute_calibration, convert_pixels_to_inches,
                     format_inches, is_valid_calibration, measure_between, pixel_distance,
                     require_finite_marker, require_positive_distance, validate_calibration)


def test_pixel_distance_pythagorean():
    assert pixel_distance(MarkerPosition(0, 0), MarkerPosition(3, 4)) == 5


def test_pixel_distance_symmetric_and_zero_on_identity():
    a, b = MarkerPosition(12.5, -3), MarkerPosition(-7, 40.25)
    assert pixel_distance(a, b) == pixel_distance(b, a)
    assert pixel_distance(a, a) == 0


def test_pixel_distance_propagates_nan():
    assert math.isnan(pixel_distance(MarkerPosition(float('nan'), 0), MarkerPosition(1, 1)))


def test_compute_calibration_card_at_36_inches():
    record = compute_calibration(MarkerPosition(0, 0), MarkerPosition(100, 0), 36, 3.375)
    assert record.pixels_per_inch == pytest.approx(100 / 3.375)
    assert record.pixels_per_inch == pytest.approx(29.63, abs=0.01)
    assert record.reference_distance_inches == 36


def test_coincident_markers_give_rejected_record():
    p = MarkerPosition(50, 50)
    record = compute_calibration(p, p, 36, 3.375)
    assert record.pixels_per_inch == 0
    assert not is_valid_calibration(record)
    with pytest.raises(DegenerateCalibrationError):
        validate_calibration(record)


def test_no_adjustment_at_reference_distance():
    assert convert_pixels_to_inches(150, 36, 36, 29.5) == 150 / 29.5


def test_conversion_is_linear_in_distance():
    near = convert_pixels_to_inches(120, 24, 36, 30)
    far = convert_pixels_to_inches(120, 48, 36, 30)
    assert far == pytest.approx(2 * near)
    assert far > near


def test_zero_span_measures_zero():
    assert convert_pixels_to_inches(0, 60, 36, 29.63) == 0


def test_round_trip_double_span_doubles_width():
    record = compute_calibration(MarkerPosition(0, 0), MarkerPosition(100, 0), 36, 3.375)
    inches = measure_between(MarkerPosition(10, 10), MarkerPosition(210, 10), 36, record)
    assert inches == pytest.approx(6.75)


@pytest.mark.parametrize("span,distance", [(1, 12), (37.5, 50), (800, 96)])
def test_conversion_non_negative(span, distance):
    assert convert_pixels_to_inches(span, distance, 36, 29.63) >= 0


def test_validation_helpers():
    assert require_finite_marker(MarkerPosition(1, 2)) == MarkerPosition(1, 2)
    with pytest.raises(NonFiniteInputError):
        require_finite_marker(MarkerPosition(float('inf'), 2))
    with pytest.raises(NonFiniteInputError):
        require_positive_distance(float('nan'))
    with pytest.raises(ValueError):
        require_positive_distance(0)
    with pytest.raises(MissingCalibrationError):
        validate_calibration(None)
    assert not is_valid_calibration(CalibrationRecord(29.6, float('inf')))


def test_format_inches_two_decimals():
    assert format_inches(6.75) == '6.75"'
    assert format_inches(1 / 3) == '0.33"'


def test_average_calibrations():
    avg = average_calibrations([CalibrationRecord(29.0, 36), CalibrationRecord(31.0, 36)])
    assert avg == CalibrationRecord(30.0, 36)


def test_average_calibrations_rejects_mixed_distances_and_empty():
    with pytest.raises(ValueError):
        average_calibrations([CalibrationRecord(29.0, 36), CalibrationRecord(29.0, 48)])
    with pytest.raises(IncompleteInputError):
        average_calibrations([])


def test_pixel_distance_handles_huge_coordinates():
    span = pixel_distance(MarkerPosition(0, 0), MarkerPosition(1e200, 1e200))
    assert math.isfinite(span)
    assert span == pytest.approx(math.sqrt(2) * 1e200)
