"""Default retail momentum calendar.

Calendar events are declared once as immutable definitions and turned
into ``MomentumConfig`` values for the date range a caller needs. The
resulting list is passed explicitly into every attribution run.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone, tzinfo

from influencer_lift.models.commerce import AdjustmentKind, IntensityPoint, MomentumConfig


def black_friday(year: int) -> date:
    """Friday after the fourth Thursday of November."""
    first = date(year, 11, 1)
    first_thursday = first + timedelta(days=(3 - first.weekday()) % 7)
    return first_thursday + timedelta(days=22)


@dataclass(frozen=True)
class CalendarEvent:
    """A yearly demand event with an intensity curve around its peak day."""

    name: str
    peak_date: Callable[[int], date]
    impact: float
    curve: tuple[tuple[float, float], ...]

    def to_momentum(self, year: int, tz: tzinfo = timezone.utc) -> MomentumConfig:
        peak_day = self.peak_date(year)
        peak = datetime(peak_day.year, peak_day.month, peak_day.day, tzinfo=tz)
        first, last = self.curve[0][0], self.curve[-1][0]
        return MomentumConfig(
            name=f"{self.name} {year}",
            kind=AdjustmentKind.MULTIPLICATIVE,
            value=1.0 + self.impact,
            start=peak + timedelta(days=first),
            end=peak + timedelta(days=last),
            peak=peak,
            intensity_curve=[
                IntensityPoint(days_offset=offset, intensity=intensity)
                for offset, intensity in self.curve
            ],
        )


DEFAULT_EVENTS: tuple[CalendarEvent, ...] = (
    CalendarEvent(
        name="Black Friday",
        peak_date=black_friday,
        impact=0.35,
        curve=((-14, 0.2), (-7, 0.5), (-3, 0.8), (0, 1.0), (2, 0.6), (7, 0.3), (14, 0.1)),
    ),
    CalendarEvent(
        name="Winter sales",
        peak_date=lambda year: date(year, 1, 10),
        impact=0.25,
        curve=((-3, 0.3), (0, 1.0), (7, 0.8), (14, 0.5), (21, 0.3), (28, 0.1)),
    ),
    CalendarEvent(
        name="Summer sales",
        peak_date=lambda year: date(year, 6, 25),
        impact=0.20,
        curve=((-3, 0.3), (0, 1.0), (7, 0.7), (14, 0.4), (21, 0.2)),
    ),
    CalendarEvent(
        name="Christmas",
        peak_date=lambda year: date(year, 12, 25),
        impact=0.30,
        curve=((-21, 0.3), (-14, 0.5), (-7, 0.8), (-3, 1.0), (0, 0.4), (3, 0.2)),
    ),
)


def momentum_calendar(
    start: datetime,
    end: datetime,
    events: tuple[CalendarEvent, ...] = DEFAULT_EVENTS,
) -> list[MomentumConfig]:
    """Momentum events whose range intersects ``[start, end)``, in time order.

    Event peaks are midnight in the timezone of ``start``; naive bounds
    produce naive event ranges.
    """
    tz = start.tzinfo
    momentums = []
    for year in range(start.year - 1, end.year + 2):
        for event in events:
            momentum = event.to_momentum(year, tz or timezone.utc)
            if tz is None:
                momentum = momentum.model_copy(
                    update={
                        "start": momentum.start.replace(tzinfo=None),
                        "end": momentum.end.replace(tzinfo=None),
                        "peak": momentum.peak.replace(tzinfo=None),
                    }
                )
            if momentum.overlaps(start, end):
                momentums.append(momentum)
    return sorted(momentums, key=lambda m: m.start)
