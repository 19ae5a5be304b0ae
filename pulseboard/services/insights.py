"""Insight and recommendation text derived from aggregated time stats.

Both lists come from ordered rule tables. A rule is a predicate over
``TimeStats`` and a template formatted with the stats' fields. Rules are
checked in table order and the output is capped at ``MAX_MESSAGES``.
"""
from dataclasses import asdict, dataclass, field
from typing import Callable, NamedTuple, Optional

from pulseboard.models.analytics import TimeBucket

MAX_MESSAGES = 4

SHORT_SESSION_HOURS = 0.5
LONG_SESSION_HOURS = 4
SCOPE_CREEP_RATIO = 1.5
WEEKEND_SHARE_THRESHOLD = 30

PERIOD_UNITS = {
    "day": "hour",
    "week": "day",
    "month": "5-day block",
    "quarter": "month",
}


@dataclass
class TimeStats:
    """Aggregate numbers the rules are evaluated against."""

    time_range: str = "week"
    buckets: list[TimeBucket] = field(default_factory=list)
    total_hours: float = 0.0
    total_entries: int = 0
    peak_period: Optional[str] = None
    peak_hours: float = 0.0
    weekday_hours: float = 0.0
    weekend_hours: float = 0.0
    avg_session_hours: float = 0.0
    longest_session_hours: float = 0.0
    active_buckets: int = 0
    estimated_hours: Optional[float] = None
    card_tracked_hours: Optional[float] = None

    @property
    def tracked_hours(self) -> float:
        return self.weekday_hours + self.weekend_hours

    @property
    def weekend_share(self) -> float:
        """Percentage of tracked time that started on a Saturday or Sunday."""
        if self.tracked_hours <= 0:
            return 0.0
        return round(self.weekend_hours / self.tracked_hours * 100, 1)

    @property
    def estimate_ratio(self) -> Optional[float]:
        """
        Hours tracked on the card over its estimate, if it has one.

        Measured against the card's lifetime total when it is known, and
        against the hours in the selected range otherwise.
        """
        if not self.estimated_hours:
            return None
        tracked = self.card_tracked_hours
        if tracked is None:
            tracked = self.tracked_hours
        return round(tracked / self.estimated_hours, 2)

    @property
    def period_unit(self) -> str:
        return PERIOD_UNITS.get(self.time_range, "period")

    def template_fields(self) -> dict:
        fields = asdict(self)
        fields.update(
            weekend_share=self.weekend_share,
            estimate_ratio=self.estimate_ratio,
            period_unit=self.period_unit,
            tracked_hours=round(self.tracked_hours, 2),
        )
        return fields


class Rule(NamedTuple):
    predicate: Callable[[TimeStats], bool]
    template: str


def _over_estimate(stats: TimeStats) -> bool:
    ratio = stats.estimate_ratio
    return ratio is not None and ratio > SCOPE_CREEP_RATIO


INSIGHT_RULES: tuple[Rule, ...] = (
    Rule(
        lambda s: s.peak_hours > 0,
        "Most time was tracked during {peak_period} ({peak_hours}h)",
    ),
    Rule(
        _over_estimate,
        "Tracked time is {estimate_ratio}x the estimate of {estimated_hours}h",
    ),
    Rule(
        lambda s: s.weekend_hours > 0 and s.weekend_share >= WEEKEND_SHARE_THRESHOLD,
        "Weekend work accounts for {weekend_share}% of tracked time",
    ),
    Rule(
        lambda s: s.weekday_hours > 0 and s.weekend_hours == 0,
        "All tracked time falls on weekdays",
    ),
    Rule(
        lambda s: s.total_entries > 0,
        "{total_entries} session(s) averaging {avg_session_hours}h each",
    ),
    Rule(
        lambda s: s.active_buckets == 1 and len(s.buckets) > 1,
        "All work in this range happened within a single {period_unit}",
    ),
    Rule(
        lambda s: s.estimate_ratio is not None and s.estimate_ratio <= 1,
        "Tracked time is within the {estimated_hours}h estimate",
    ),
)

RECOMMENDATION_RULES: tuple[Rule, ...] = (
    Rule(
        lambda s: s.total_entries == 0,
        "Start tracking time on this card to unlock insights",
    ),
    Rule(
        lambda s: 0 < s.avg_session_hours < SHORT_SESSION_HOURS,
        "Sessions average under 30 minutes - try longer focus blocks",
    ),
    Rule(
        _over_estimate,
        "Tracked hours are {estimate_ratio}x the estimate - review the card for scope creep",
    ),
    Rule(
        lambda s: s.longest_session_hours > LONG_SESSION_HOURS,
        "Sessions over {longest_session_hours}h detected - schedule breaks to stay sharp",
    ),
    Rule(
        lambda s: s.weekend_share >= WEEKEND_SHARE_THRESHOLD,
        "A large share of work lands on weekends - consider rebalancing the workload",
    ),
    Rule(
        lambda s: s.total_entries > 0 and s.active_buckets == 1 and len(s.buckets) > 1,
        "Spread work across the {time_range} to keep steady progress",
    ),
)


def evaluate_rules(rules: tuple[Rule, ...], stats: TimeStats, limit: int = MAX_MESSAGES) -> list[str]:
    """Format every rule whose predicate holds, in table order, up to ``limit``."""
    fields = stats.template_fields()
    messages = [rule.template.format(**fields) for rule in rules if rule.predicate(stats)]
    return messages[:limit]


def generate_insights(stats: TimeStats) -> list[str]:
    """Observations about where and when time went."""
    return evaluate_rules(INSIGHT_RULES, stats)


def generate_recommendations(stats: TimeStats) -> list[str]:
    """Suggested changes to how time is being spent."""
    return evaluate_rules(RECOMMENDATION_RULES, stats)
