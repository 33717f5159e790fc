from datetime import time

import pytest

from clinic_backend.scheduling.errors import InvalidTimeLabelError, MalformedWorkingHoursError
from clinic_backend.scheduling.time_of_day import (
    format_hhmm,
    label_to_minutes,
    minutes_to_label,
    normalize_time,
    parse_hhmm,
)


@pytest.mark.parametrize(
    ('minutes', 'label'),
    [
        (0, '12:00 AM'),
        (30, '12:30 AM'),
        (570, '09:30 AM'),
        (720, '12:00 PM'),
        (810, '01:30 PM'),
        (1439, '11:59 PM'),
    ],
)
def test_minutes_to_label_uses_twelve_hour_clock(minutes: int, label: str) -> None:
    assert minutes_to_label(minutes) == label


@pytest.mark.parametrize(
    ('label', 'minutes'),
    [
        ('12:00 PM', 720),
        ('12:00 AM', 0),
        ('01:30 PM', 810),
        ('9:30 am', 570),
        ('11:30PM', 1410),
        ('09:30 ص', 570),
        ('01:30 م', 810),
        ('12:00 م', 720),
    ],
)
def test_label_to_minutes_normalizes_period(label: str, minutes: int) -> None:
    assert label_to_minutes(label) == minutes


def test_every_slot_label_maps_back_to_its_minutes() -> None:
    for minutes in range(0, 24 * 60, 30):
        assert label_to_minutes(minutes_to_label(minutes)) == minutes


@pytest.mark.parametrize('label', ['13:00 PM', '00:30 AM', '9:60 AM', 'noon', '', '09:30'])
def test_label_to_minutes_rejects_bad_labels(label: str) -> None:
    with pytest.raises(InvalidTimeLabelError):
        label_to_minutes(label)


def test_minutes_to_label_rejects_out_of_range_minutes() -> None:
    with pytest.raises(ValueError):
        minutes_to_label(24 * 60)


@pytest.mark.parametrize(('value', 'minutes'), [('09:00', 540), ('9:05', 545), ('23:59', 1439), ('00:00', 0)])
def test_parse_hhmm_accepts_24_hour_times(value: str, minutes: int) -> None:
    assert parse_hhmm(value) == minutes


@pytest.mark.parametrize('value', ['24:00', '12:60', '9am', '', None, 900])
def test_parse_hhmm_rejects_malformed_times(value) -> None:
    with pytest.raises(MalformedWorkingHoursError):
        parse_hhmm(value)


def test_format_hhmm_pads_hours_and_minutes() -> None:
    assert format_hhmm(545) == '09:05'


def test_normalize_time_accepts_time_pairs_and_labels() -> None:
    assert normalize_time(time(13, 30)) == 810
    assert normalize_time((13, 30)) == 810
    assert normalize_time('01:30 PM') == 810


@pytest.mark.parametrize('pair', [(24, 0), ('9', '30'), (9.5, 0), (True, 0), (9,)])
def test_normalize_time_rejects_bad_pairs(pair) -> None:
    with pytest.raises(InvalidTimeLabelError):
        normalize_time(pair)
