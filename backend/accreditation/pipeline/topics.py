"""Kafka topic name constants."""

ASSESSMENT_STATUS_CHANGED = "assessment.status.changed"
TEMPLATE_CLONED = "rubric.template.cloned"
