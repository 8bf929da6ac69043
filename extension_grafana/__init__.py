# Grafana Extension - Main Package
"""
Grafana alert-rule extension.

This package provides:
- Discovery of Grafana alert rules as targets
- A time-bounded alert rule state check
- Experiment lifecycle annotations on Grafana
"""

__version__ = "1.0.0"
