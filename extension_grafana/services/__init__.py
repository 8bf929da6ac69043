# Services Package
"""
Core logic of the extension.

- datasource_filter.py: Datasources able to host alert rules
- rule_discovery.py: Alert rules as cached discovery targets
- alert_rule_check.py: Time-bounded alert rule state check
- annotation_tags.py: Tags derived from lifecycle events
- annotation_reconciler.py: Create-or-patch of experiment annotations
"""
