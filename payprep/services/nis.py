from ..models import NISClass

NIS_MINIMUM_EARNINGS = 200.00

# Weekly earnings brackets and fixed employee contribution (2026)
NIS_TABLE_2026 = [
    NISClass('I', 200.00, 339.99, 14.60),
    NISClass('II', 340.00, 449.99, 21.30),
    NISClass('III', 450.00, 609.99, 28.60),
    NISClass('IV', 610.00, 759.99, 37.00),
    NISClass('V', 760.00, 929.99, 45.60),
    NISClass('VI', 930.00, 1119.99, 55.40),
    NISClass('VII', 1120.00, 1299.99, 65.30),
    NISClass('VIII', 1300.00, 1489.99, 75.30),
    NISClass('IX', 1490.00, 1709.99, 86.40),
    NISClass('X', 1710.00, 1909.99, 97.70),
    NISClass('XI', 1910.00, 2139.99, 109.40),
    NISClass('XII', 2140.00, 2379.99, 122.00),
    NISClass('XIII', 2380.00, 2629.99, 135.30),
    NISClass('XIV', 2630.00, 2919.99, 149.90),
    NISClass('XV', 2920.00, 3137.99, 163.60),
    NISClass('XVI', 3138.00, None, 169.50),
]


def find_nis_class(gross_weekly_earnings: float) -> NISClass | None:
    if gross_weekly_earnings < NIS_MINIMUM_EARNINGS:
        return None
    for nis_class in NIS_TABLE_2026:
        if gross_weekly_earnings < nis_class.min_earnings:
            continue
        if nis_class.max_earnings is None or gross_weekly_earnings <= nis_class.max_earnings:
            return nis_class
    return None


def calculate_nis_contribution(gross_weekly_earnings: float) -> float:
    """Employee NIS deduction for a week's gross pay; 0 below the first class."""
    nis_class = find_nis_class(gross_weekly_earnings)
    return nis_class.contribution if nis_class else 0.0
