"""Clinic weekly working hours and the day-rule parser."""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Mapping, Union

from clinic_backend.scheduling.errors import MalformedWorkingHoursError
from clinic_backend.scheduling.time_of_day import parse_hhmm

logger = logging.getLogger(__name__)

# Ordered the way the clinic settings page lists them.
WEEKDAYS = ('saturday', 'sunday', 'monday', 'tuesday', 'wednesday', 'thursday', 'friday')

# date.weekday(): Monday is 0.
_WEEKDAY_BY_INDEX = ('monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday')


@dataclass(frozen=True)
class DayRule:
    off: bool = False
    start: str | None = None
    end: str | None = None

    @classmethod
    def from_mapping(cls, raw: Mapping) -> 'DayRule':
        return cls(
            off=bool(raw.get('off', False)),
            start=raw.get('start') or None,
            end=raw.get('end') or None,
        )

    def to_dict(self) -> dict:
        return {'off': self.off, 'start': self.start, 'end': self.end}


@dataclass(frozen=True)
class WellFormed:
    start_minutes: int
    end_minutes: int


@dataclass(frozen=True)
class Off:
    pass


@dataclass(frozen=True)
class UseDefaultTemplate:
    reason: str


ParsedDayRule = Union[WellFormed, Off, UseDefaultTemplate]


@dataclass(frozen=True)
class WorkingHours:
    days: Mapping[str, DayRule] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, raw: Mapping | None) -> 'WorkingHours':
        raw = raw or {}
        days = {}
        for weekday in WEEKDAYS:
            day_config = raw.get(weekday)
            if isinstance(day_config, Mapping):
                days[weekday] = DayRule.from_mapping(day_config)
        return cls(days=days)

    def day_rule_for(self, day: date) -> DayRule | None:
        return self.days.get(weekday_name(day))

    def to_dict(self) -> dict:
        return {weekday: rule.to_dict() for weekday, rule in self.days.items()}


def weekday_name(day: date) -> str:
    return _WEEKDAY_BY_INDEX[day.weekday()]


def parse_day_rule(rule: DayRule | None) -> ParsedDayRule:
    if rule is None or rule.off:
        return Off()

    if not rule.start or not rule.end:
        return UseDefaultTemplate('start or end time missing')

    try:
        start_minutes = parse_hhmm(rule.start)
        end_minutes = parse_hhmm(rule.end)
    except MalformedWorkingHoursError as exc:
        logger.warning('Falling back to default slots: %s', exc)
        return UseDefaultTemplate(str(exc))

    if end_minutes <= start_minutes:
        logger.warning('Falling back to default slots: end %s is not after start %s', rule.end, rule.start)
        return UseDefaultTemplate('end time is not after start time')

    return WellFormed(start_minutes=start_minutes, end_minutes=end_minutes)
