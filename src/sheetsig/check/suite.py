"""
Weighted check suites for sheetsig.

A check measures one value on a candidate and maps it to an impact in [0, 1]
with a linear ramp between a low and a high bound. A suite combines the impacts
of its checks into a single grade, the weighted geometric mean.
"""

import math

from sheetsig.models import SuiteImpacts


class Check:
    """
    A single measurement with its acceptance ramp.

    For a covariant check the impact grows with the value: 0 at or below low,
    1 at or above high. For a contravariant check it is the other way round.
    A zero impact records the failure code on the checked context.
    """

    def __init__(self, name, description, low, high, covariant, failure, value_fn):
        if high <= low:
            raise ValueError(f"check {name}: high bound must exceed low bound")
        self.name = name
        self.description = description
        self.low = low
        self.high = high
        self.covariant = covariant
        self.failure = failure
        self.value_fn = value_fn

    def __repr__(self):
        return f"Check({self.name}, low={self.low}, high={self.high}, covariant={self.covariant})"

    def impact_of(self, value):
        ratio = (value - self.low) / (self.high - self.low)
        if not self.covariant:
            ratio = 1.0 - ratio
        return min(1.0, max(0.0, ratio))

    def evaluate(self, context):
        """Return (value, impact) for the given context."""
        value = float(self.value_fn(context))
        return value, self.impact_of(value)


class CheckSuite:
    """A named, weighted collection of checks with a minimum grade."""

    def __init__(self, name, min_threshold=0.5):
        self.name = name
        self.min_threshold = min_threshold
        self.checks = []

    def __repr__(self):
        return f"CheckSuite({self.name}, checks={len(self.checks)}, min={self.min_threshold})"

    def add(self, weight, check):
        if weight < 0:
            raise ValueError("check weight cannot be negative")
        self.checks.append((weight, check))
        return self

    @property
    def total_weight(self):
        return sum(w for w, _ in self.checks)

    def get_impacts(self, context):
        """
        Apply all checks to the context.

        Failures are reported to context.add_failure when the context offers it.
        """
        impacts = SuiteImpacts(suite=self.name)
        log_sum = 0.0
        zero = False

        for weight, check in self.checks:
            value, impact = check.evaluate(context)
            impacts.names.append(check.name)
            impacts.weights.append(weight)
            impacts.values.append(value)
            impacts.impacts.append(impact)

            if impact <= 0.0:
                impacts.failures.append(check.failure)
                if hasattr(context, "add_failure"):
                    context.add_failure(check.failure)

            if weight > 0:
                if impact <= 0.0:
                    zero = True
                else:
                    log_sum += weight * math.log(impact)

        total = self.total_weight
        if zero or total == 0:
            impacts.grade = 0.0
        else:
            impacts.grade = math.exp(log_sum / total)

        return impacts

    def passes(self, impacts):
        return impacts.grade >= self.min_threshold
