"""
KYB Intel Algorithm Engine: pure computations over already-fetched records.

Components:
- geo: Haversine great-circle distance
- clustering: Proximity clustering with suspicious-pattern flags
- risk_scoring: Composite 1-10 entity risk score with explainable factors
- graph_metrics: Degree, density, centrality estimate, aggregate risk
- timeline: Multi-source event merge, range filter, sort and summary

No component performs I/O or keeps state between calls.
"""
