"""Certification tracks and exam blueprint constants."""

from __future__ import annotations

from typing import Final

CERTIFICATION_TYPES: Final[tuple[str, ...]] = ("CV0-004", "SAA-C03")

# Exam blueprint weights (percent) for the CompTIA Cloud+ domains.
DOMAIN_WEIGHTS: Final[dict[str, int]] = {
  "Cloud Architecture and Design": 23,
  "Cloud Security": 19,
  "DevOps Fundamentals": 10,
  "Cloud Operations and Support": 17,
  "Cloud Deployment": 19,
  "Troubleshooting": 12,
}
DEFAULT_QUESTION_WEIGHT: Final[int] = 19

SKILL_LEVELS: Final[tuple[str, ...]] = ("Beginner", "Intermediate", "Advanced", "Expert")

COGNITIVE_LEVELS: Final[tuple[str, ...]] = ("Knowledge", "Comprehension", "Application", "Analysis", "Synthesis", "Evaluation")

QUESTION_TABLES: Final[dict[str, str]] = {
  "CV0-004": "prepper.comptia_cloud_plus_questions",
  "SAA-C03": "prepper.aws_certified_architect_associate_questions",
}


def is_supported_certification(certification_type: str | None) -> bool:
  return certification_type in CERTIFICATION_TYPES


def domain_weight(domain_name: str | None) -> int | None:
  """Return the blueprint weight for a domain, or None for unknown domains."""
  if not domain_name:
    return None
  return DOMAIN_WEIGHTS.get(domain_name)


def question_table(certification_type: str) -> str:
  """Resolve the question table for a certification, defaulting to Cloud+."""
  return QUESTION_TABLES.get(certification_type, QUESTION_TABLES["CV0-004"])
