"""
scoring/ — Competency Aggregation Engine

Modules:
    utils.py                  - Decimal utilities
    weight_resolver.py        - Relationship weight normalization
    confidence_calculator.py  - Evidence / consistency / coverage confidence
    score_synthesizer.py      - Weighted, confidence-adjusted competency scores
"""
