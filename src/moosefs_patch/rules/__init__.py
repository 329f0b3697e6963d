"""Anchor matchers, insertion rules and the default MooseFS rule set."""

from .models import AnchorMatcher, InsertionRule, contains, starts_with
from .registry import RegistryStats, RuleConflictError, RuleRegistry
from .defaults import default_rule_ids, default_rules, load_default_rules, load_template

__all__ = [
    "AnchorMatcher",
    "InsertionRule",
    "contains",
    "starts_with",
    "RuleRegistry",
    "RuleConflictError",
    "RegistryStats",
    "default_rule_ids",
    "default_rules",
    "load_default_rules",
    "load_template",
]
