"""
Capacity status ("profit radar") for a class.

    healthy   enrollment >= min viable
    at risk   enrollment >= 70% of min viable
    critical  anything below that
"""

from fractions import Fraction

from .models import CapacityStatus


# Exact, so 7 of 10 lands on the threshold instead of beside it
AT_RISK_RATIO = Fraction(7, 10)


def classify(enrollment_count: int, min_viable_enrollment: int) -> CapacityStatus:
    """
    Classify enrollment against the minimum viable head count.

    A class with no minimum (zero or negative) is always healthy.
    Over-enrolled classes are healthy too; nothing here divides.
    """
    if min_viable_enrollment <= 0:
        return CapacityStatus.HEALTHY
    if enrollment_count >= min_viable_enrollment:
        return CapacityStatus.HEALTHY
    if enrollment_count >= AT_RISK_RATIO * min_viable_enrollment:
        return CapacityStatus.AT_RISK
    return CapacityStatus.CRITICAL
