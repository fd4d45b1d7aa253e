from collections import Counter
from typing import Any

import structlog

from configport.core.core import Service
from configport.core.modules.proxy_rule.models import DynamicProxyRule, StaticProxyRule, proxy_rule_adapter
from configport.core.modules.transfer.constants import ImportMode, TransferEvent
from configport.core.modules.transfer.duplicates import is_proxy_rule_duplicate
from configport.core.modules.transfer.models import ExportOptions, ImportOptions, ImportResult, ItemError, ValidationResult
from configport.core.modules.transfer.validators import validate_proxy_rule
from configport.utils import generate_id

logger = structlog.get_logger(__name__)

BROAD_PATTERNS = ("*", "**")


class ProxyRulesHandler(Service):
    """Export and import of proxy rules through the proxy rule store."""

    async def export_proxy_rules(self, options: ExportOptions) -> list[dict[str, Any]] | None:
        if not options.selected_items.proxy_rules:
            return None

        rules = await self.ports.proxy_rules.get_rules()
        exported = []
        for rule in rules:
            data = rule.to_json_dict()
            validation = validate_proxy_rule(data)
            if not validation.success:
                logger.warning("proxy_rule_export_filtered", rule_id=rule.id, error=validation.error)
                continue
            exported.append(data)

        logger.info("proxy_rules_exported", count=len(exported), filtered=len(rules) - len(exported))
        return exported

    async def import_proxy_rules(self, rules: list[Any], options: ImportOptions) -> ImportResult:
        result = ImportResult()
        if not rules:
            return result

        logger.info("proxy_rules_import_start", count=len(rules), mode=options.import_mode)

        if options.import_mode == ImportMode.REPLACE:
            await self._clear_existing_proxy_rules()
            existing: list[StaticProxyRule | DynamicProxyRule] = []
        else:
            existing = await self.ports.proxy_rules.get_rules()

        for raw in rules:
            pattern = raw.get("pattern") if isinstance(raw, dict) else None

            validation = validate_proxy_rule(raw)
            if not validation.success:
                logger.warning("proxy_rule_import_invalid", pattern=pattern, error=validation.error)
                result.errors.append(
                    ItemError(entity="proxyRule", identifier=pattern, error=f"Invalid proxy rule structure: {validation.error}")
                )
                continue

            try:
                rule = proxy_rule_adapter.validate_python(raw)
                if options.import_mode == ImportMode.MERGE and is_proxy_rule_duplicate(rule, existing):
                    logger.debug("proxy_rule_duplicate_skipped", pattern=rule.pattern)
                    result.skipped += 1
                    continue

                if rule.id is None:
                    rule.id = generate_id()
                await self.ports.proxy_rules.save_rule(rule)
                existing.append(rule)
                result.imported += 1
            except Exception as e:
                logger.warning("proxy_rule_import_failed", pattern=pattern, error=str(e))
                result.errors.append(ItemError(entity="proxyRule", identifier=pattern, error=str(e)))

        if result.imported > 0:
            await self.core.events.emit(
                TransferEvent.PROXY_RULES_UPDATED,
                {"imported": result.imported, "skipped": result.skipped, "source": "import"},
            )

        logger.info(
            "proxy_rules_import_complete", imported=result.imported, skipped=result.skipped, errors=len(result.errors)
        )
        return result

    async def _clear_existing_proxy_rules(self) -> None:
        existing = await self.ports.proxy_rules.get_rules()
        logger.info("proxy_rules_clear", count=len(existing))
        for rule in existing:
            if rule.id is None:
                continue
            try:
                await self.ports.proxy_rules.delete_rule(rule.id)
            except Exception as e:
                logger.warning("proxy_rule_delete_failed", rule_id=rule.id, error=str(e))

    def validate_proxy_rules_for_export(self, rules: Any) -> ValidationResult:
        if not isinstance(rules, list):
            return ValidationResult.fail("Proxy rules must be an array")

        errors = []
        for index, rule in enumerate(rules, start=1):
            validation = validate_proxy_rule(rule)
            if not validation.success:
                errors.append(f"Proxy rule {index}: {validation.error}")
        return ValidationResult.fail("; ".join(errors)) if errors else ValidationResult.ok()

    def get_proxy_rules_statistics(self, rules: Any) -> dict[str, Any]:
        if not isinstance(rules, list):
            return {"total": 0, "withHeaders": 0, "patterns": [], "averageHeadersPerRule": 0}

        dict_rules = [rule for rule in rules if isinstance(rule, dict)]
        with_headers = [rule for rule in dict_rules if isinstance(rule.get("headers"), list) and rule["headers"]]
        total_headers = sum(len(rule["headers"]) for rule in with_headers)
        return {
            "total": len(rules),
            "withHeaders": len(with_headers),
            "patterns": [rule["pattern"] for rule in dict_rules if rule.get("pattern")],
            "averageHeadersPerRule": round(total_headers / len(with_headers), 2) if with_headers else 0,
        }

    def analyze_proxy_rules(self, rules: Any) -> dict[str, list[str]]:
        """Warnings and suggestions about repeated, overly broad, or header-less rules."""
        warnings: list[str] = []
        suggestions: list[str] = []
        if not isinstance(rules, list):
            return {"warnings": warnings, "suggestions": suggestions}

        dict_rules = [rule for rule in rules if isinstance(rule, dict)]
        pattern_counts = Counter(rule["pattern"] for rule in dict_rules if rule.get("pattern"))
        for pattern, count in pattern_counts.items():
            if count > 1:
                warnings.append(f'Pattern "{pattern}" appears {count} times')
                suggestions.append(f'Consider consolidating rules with pattern "{pattern}"')

        for index, rule in enumerate(dict_rules, start=1):
            if rule.get("pattern") in BROAD_PATTERNS:
                warnings.append(f"Rule {index} has a very broad pattern that may affect all requests")
                suggestions.append(f"Consider using more specific patterns for rule {index}")

        without_headers = sum(1 for rule in dict_rules if not rule.get("headers"))
        if without_headers:
            warnings.append(f"{without_headers} rule(s) have no headers configured")
            suggestions.append("Rules without headers may not have any effect")

        return {"warnings": warnings, "suggestions": suggestions}
