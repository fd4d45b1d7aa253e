"""Duplicate detection for imported entities.

Comparisons are directional (candidate against existing) and compare only the
fields that define an entity's identity, never whole objects.
"""

import asyncio
from collections.abc import AsyncIterator, Callable, Collection, Sequence
from dataclasses import dataclass
from typing import Any

from configport.core.modules.environment.models import Environments
from configport.core.modules.proxy_rule.models import DynamicProxyRule, HeaderMod, StaticProxyRule
from configport.core.modules.rule.models import HeaderRule, PayloadRule, UrlAction, UrlRule
from configport.core.modules.source.models import Source, SourceType
from configport.core.modules.workspace.models import Workspace

ProxyRuleModel = StaticProxyRule | DynamicProxyRule
RuleModel = HeaderRule | PayloadRule | UrlRule
DuplicateDetector = Callable[[Any, Sequence[Any]], bool]


def is_source_duplicate(source: Source, existing: Sequence[Source]) -> bool:
    """Same type and path. An http path may host several verbs, so the method is compared too."""
    for current in existing:
        if current.source_type != source.source_type or current.source_path != source.source_path:
            continue
        if source.source_type != SourceType.HTTP or current.request_method == source.request_method:
            return True
    return False


def are_headers_equal(existing: HeaderMod, candidate: HeaderMod) -> bool:
    if existing.name != candidate.name or existing.is_dynamic != candidate.is_dynamic:
        return False
    if not candidate.is_dynamic:
        return existing.value == candidate.value
    return (
        existing.source_id == candidate.source_id
        and (existing.prefix or "") == (candidate.prefix or "")
        and (existing.suffix or "") == (candidate.suffix or "")
    )


def is_proxy_rule_duplicate(rule: ProxyRuleModel, existing: Sequence[ProxyRuleModel]) -> bool:
    """Same pattern and the same header modifications, compared as unordered multisets."""
    for current in existing:
        if current.pattern != rule.pattern:
            continue

        if current.headers is None or rule.headers is None:
            if current.headers is None and rule.headers is None:
                return True
            continue

        if len(current.headers) != len(rule.headers):
            continue

        if all(any(are_headers_equal(header, candidate) for header in current.headers) for candidate in rule.headers):
            return True
    return False


def are_header_modifications_equal(first: Sequence[HeaderMod] | None, second: Sequence[HeaderMod] | None) -> bool:
    """Compare two header lists after sorting both by name."""
    if first is None or second is None:
        return first is None and second is None
    if len(first) != len(second):
        return False

    sorted_first = sorted(first, key=lambda header: header.name)
    sorted_second = sorted(second, key=lambda header: header.name)
    return all(are_headers_equal(a, b) for a, b in zip(sorted_first, sorted_second, strict=True))


def are_rules_content_equal(first: RuleModel, second: RuleModel) -> bool:
    """Compare the fields that matter for the rule's variant and action."""
    if first.type != second.type:
        return False
    if first.name != second.name or first.is_enabled != second.is_enabled or set(first.domains) != set(second.domains):
        return False

    if isinstance(first, HeaderRule) and isinstance(second, HeaderRule):
        if (first.header_name, first.is_dynamic, first.is_response) != (
            second.header_name,
            second.is_dynamic,
            second.is_response,
        ):
            return False
        if first.is_dynamic:
            return (first.source_id, first.prefix, first.suffix) == (second.source_id, second.prefix, second.suffix)
        return first.header_value == second.header_value

    if isinstance(first, PayloadRule) and isinstance(second, PayloadRule):
        return (first.match_pattern, first.match_type, first.replace_with) == (
            second.match_pattern,
            second.match_type,
            second.replace_with,
        )

    if isinstance(first, UrlRule) and isinstance(second, UrlRule):
        if (first.match_pattern, first.match_type, first.action) != (
            second.match_pattern,
            second.match_type,
            second.action,
        ):
            return False
        if first.action == UrlAction.REDIRECT:
            return first.redirect_to == second.redirect_to
        if first.action == UrlAction.MODIFY:
            return first.replace_pattern == second.replace_pattern and first.modify_params == second.modify_params
        return True

    return False


def is_rule_duplicate(rule: RuleModel, existing: Sequence[RuleModel]) -> bool:
    """An id match is authoritative. Rules without an id fall back to content comparison."""
    if rule.id:
        return any(current.id == rule.id for current in existing)
    return any(are_rules_content_equal(rule, current) for current in existing)


def is_environment_variable_duplicate(variable_name: str, environment_name: str, environments: Environments) -> bool:
    """A variable exists regardless of its value."""
    if not variable_name or not environment_name:
        return False
    return variable_name in environments.get(environment_name, {})


def is_workspace_name_duplicate(name: str, workspaces: Sequence[Workspace]) -> bool:
    return bool(name) and any(workspace.name == name for workspace in workspaces)


def generate_unique_name(base_name: str, existing_names: Collection[str], suffix: str = "Copy") -> str:
    """Return `base_name`, or `"base (suffix)"`, `"base (suffix 2)"`, ... whichever is free first."""
    if base_name not in existing_names:
        return base_name

    counter = 1
    candidate = f"{base_name} ({suffix})"
    while candidate in existing_names:
        counter += 1
        candidate = f"{base_name} ({suffix} {counter})"
    return candidate


def _never_duplicate(_item: Any, _existing: Sequence[Any]) -> bool:
    return False


def create_duplicate_detector(data_type: str) -> DuplicateDetector:
    """Detector for `sources`, `proxyRules` or `rules`. Other types never report duplicates."""
    detectors: dict[str, DuplicateDetector] = {
        "sources": is_source_duplicate,
        "proxyRules": is_proxy_rule_duplicate,
        "rules": is_rule_duplicate,
    }
    return detectors.get(data_type, _never_duplicate)


@dataclass
class YieldPolicy:
    """How often a long duplicate scan hands control back to the event loop."""

    batch_size: int = 50
    delay: float = 0.0


@dataclass
class DuplicateCheck[T]:
    item: T
    is_duplicate: bool


async def iter_duplicate_batches[T](
    items: Sequence[T], existing: Sequence[Any], detector: DuplicateDetector, policy: YieldPolicy | None = None
) -> AsyncIterator[list[DuplicateCheck[T]]]:
    """Yield duplicate checks one chunk at a time, sleeping between chunks so other tasks can run."""
    policy = policy or YieldPolicy()
    if policy.batch_size < 1:
        raise ValueError("batch_size must be positive")

    for start in range(0, len(items), policy.batch_size):
        batch = items[start : start + policy.batch_size]
        yield [DuplicateCheck(item=item, is_duplicate=detector(item, existing)) for item in batch]
        if start + policy.batch_size < len(items):
            await asyncio.sleep(policy.delay)


async def batch_duplicate_detection[T](
    items: Sequence[T], existing: Sequence[Any], detector: DuplicateDetector, batch_size: int = 50
) -> list[DuplicateCheck[T]]:
    """Check every item against `existing`, preserving input order."""
    results: list[DuplicateCheck[T]] = []
    async for batch in iter_duplicate_batches(items, existing, detector, YieldPolicy(batch_size=batch_size)):
        results.extend(batch)
    return results
