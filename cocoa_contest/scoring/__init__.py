"""
scoring/ - Cocoa Contest Scoring Engine

Modules:
    utils.py                  - Decimal utilities
    sensory_aggregator.py     - Composite attribute groups, radar vector
    chocolate_calculator.py   - Weighted chocolate category score
    physical_criteria.py      - Pre-sensory physical inspection rules
    outlier_filter.py         - Sigma-based judge score damping
"""
