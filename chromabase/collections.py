"""Per-collection validation rules and record sanitisation."""

from __future__ import annotations

import logging
import math
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from chromabase.exceptions import ValidationError

logger = logging.getLogger(__name__)

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# Fields the gateway owns; never taken from a request body.
SERVER_FIELDS = frozenset({"id", "created_at", "updated_at"})


class CollectionRule(BaseModel):
    label: str
    required: list[str] = Field(default_factory=list)
    email: list[str] = Field(default_factory=list)
    choices: dict[str, list[str]] = Field(default_factory=dict)
    non_negative: list[str] = Field(default_factory=list)


class CollectionsFile(BaseModel):
    collections: dict[str, CollectionRule] = Field(min_length=1)


LEAD_STAGES = ["New", "Contacted", "Qualified", "Proposal", "Won", "Lost"]
LEAD_SOURCES = ["Website", "Referral", "Social", "Cold Outreach", "Ad", "Event", "Other"]
CAMPAIGN_STATUSES = ["planning", "active", "paused", "completed"]
CONTENT_TYPES = ["Blog Post", "Social Media", "Email", "Landing Page", "Ad Copy", "Video Script", "Other"]
CONTENT_STATUSES = ["Draft", "Review", "Approved", "Published", "Archived"]
DELIVERABLE_STATUSES = ["Pending", "In Progress", "Review", "Completed", "Cancelled"]

DEFAULT_RULES: dict[str, CollectionRule] = {
    "clients": CollectionRule(
        label="Client",
        required=["name", "email", "status"],
        email=["email"],
    ),
    "leads": CollectionRule(
        label="Lead",
        required=["name", "email", "pipeline_stage"],
        email=["email"],
        choices={"pipeline_stage": LEAD_STAGES, "source": LEAD_SOURCES},
        non_negative=["value"],
    ),
    "campaigns": CollectionRule(
        label="Campaign",
        required=["name", "status"],
        choices={"status": CAMPAIGN_STATUSES},
        non_negative=["budget"],
    ),
    "content": CollectionRule(
        label="Content",
        required=["title", "content_type", "status"],
        choices={"content_type": CONTENT_TYPES, "status": CONTENT_STATUSES},
    ),
    "deliverables": CollectionRule(
        label="Deliverable",
        required=["name", "client_id", "status"],
        choices={"status": DELIVERABLE_STATUSES},
    ),
}


def load_rules(path: Path | None = None) -> dict[str, CollectionRule]:
    """Return the rule table, read from a YAML file when one is configured.

    File format::

        collections:
          clients:
            label: Client
            required: [name, email, status]
            email: [email]
    """
    if path is None:
        return dict(DEFAULT_RULES)

    with open(path, encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    rules = CollectionsFile.model_validate(raw).collections
    logger.info("Loaded %d collection rule(s) from %s", len(rules), path)
    return rules


def _words(field: str) -> str:
    return field.replace("_", " ")


def _is_non_empty(value: Any) -> bool:
    return isinstance(value, str) and value.strip() != ""


def sanitize(payload: dict[str, Any]) -> dict[str, Any]:
    """Drop server-owned keys, nulls and nested objects from a request body."""
    clean = {}
    for key, value in payload.items():
        if key in SERVER_FIELDS:
            continue
        if value is None or isinstance(value, dict):
            continue
        clean[key] = value
    return clean


def validate_record(rule: CollectionRule, record: dict[str, Any]) -> None:
    """Raise ValidationError on the first rule the record breaks."""
    for field in rule.required:
        if not _is_non_empty(record.get(field)):
            raise ValidationError(f"{rule.label} {_words(field)} is required")
        if field in rule.email and not _EMAIL_RE.match(record[field]):
            raise ValidationError("Invalid email format")

    for field in rule.email:
        value = record.get(field)
        if field not in rule.required and value is not None:
            if not isinstance(value, str) or not _EMAIL_RE.match(value):
                raise ValidationError("Invalid email format")

    for field, allowed in rule.choices.items():
        value = record.get(field)
        if field not in rule.required and value in (None, ""):
            continue
        if value not in allowed:
            raise ValidationError(
                f"Invalid {_words(field)}. Must be one of: {', '.join(allowed)}"
            )

    for field in rule.non_negative:
        if field not in record:
            continue
        value = record[field]
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
            raise ValidationError(f"{_words(field).capitalize()} must be a positive number")
        # NaN and +Infinity pass the comparison above
        if isinstance(value, float) and not math.isfinite(value):
            raise ValidationError(f"{_words(field).capitalize()} must be a positive number")
