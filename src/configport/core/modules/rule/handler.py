from collections import Counter
from typing import Any

import structlog
from pydantic import ValidationError as PydanticValidationError

from configport.core.core import Service
from configport.core.modules.rule.models import HeaderRule, PayloadRule, RulesStorage, RuleType, UrlRule, rule_adapter
from configport.core.modules.transfer.constants import ImportMode, TransferEvent
from configport.core.modules.transfer.duplicates import is_rule_duplicate
from configport.core.modules.transfer.models import ExportOptions, ImportOptions, ImportResult, ItemError, ValidationResult
from configport.core.modules.transfer.validators import validate_rule
from configport.utils import generate_id, now_iso

logger = structlog.get_logger(__name__)

LARGE_RULE_SET = 100


class RulesHandler(Service):
    """Rules live in one JSON document per workspace, grouped by rule type."""

    async def storage_key(self) -> str:
        workspace = await self.ports.workspaces.get_active_workspace()
        workspace_id = workspace.id if workspace is not None else "default"
        return f"workspaces/{workspace_id}/rules.json"

    async def load_storage(self) -> RulesStorage:
        """Stored rules, or an empty envelope when nothing was saved yet."""
        content = await self.ports.storage.load(await self.storage_key())
        if not content:
            return RulesStorage()
        storage = RulesStorage.model_validate_json(content)
        for rule_type in RuleType:
            storage.rules.setdefault(rule_type, [])
        return storage

    async def save_storage(self, storage: RulesStorage) -> None:
        await self.ports.storage.save(await self.storage_key(), storage.model_dump_json(by_alias=True))

    async def export_rules(self, options: ExportOptions) -> dict[str, Any] | None:
        """`{rules, rulesMetadata}` for the active workspace. None when not selected."""
        if not options.selected_items.rules:
            return None

        storage = await self.load_storage()
        data = storage.to_json_dict()
        logger.info("rules_exported", count=storage.count())
        return {"rules": data["rules"], "rulesMetadata": data["metadata"]}

    async def import_rules(self, rules: dict[str, Any], options: ImportOptions) -> ImportResult:
        result = ImportResult()
        if not rules:
            return result

        logger.info("rules_import_start", types=list(rules), mode=options.import_mode)
        storage = RulesStorage() if options.import_mode == ImportMode.REPLACE else await self.load_storage()

        for type_key, type_rules in rules.items():
            if not isinstance(type_rules, list):
                continue

            if type_key not in tuple(RuleType):
                for rule in type_rules:
                    result.errors.append(
                        ItemError(entity="rule", identifier=_rule_identifier(rule), error=f"Unknown rule type: {type_key}")
                    )
                continue

            rule_type = RuleType(type_key)
            existing = [_parse_stored_rule(rule) for rule in storage.rules[rule_type]]
            existing = [rule for rule in existing if rule is not None]

            for raw in type_rules:
                identifier = _rule_identifier(raw)
                validation = validate_rule(raw, rule_type)
                if not validation.success or validation.data is None:
                    logger.warning("rule_import_invalid", rule_type=rule_type, rule_id=identifier, error=validation.error)
                    result.errors.append(ItemError(entity="rule", identifier=identifier, error=str(validation.error)))
                    continue

                try:
                    rule = rule_adapter.validate_python(validation.data)
                    if options.import_mode == ImportMode.MERGE and is_rule_duplicate(rule, existing):
                        logger.debug("rule_duplicate_skipped", rule_type=rule_type, rule_id=rule.id)
                        result.skipped += 1
                        result.skipped_by_type[rule_type] = result.skipped_by_type.get(rule_type, 0) + 1
                        continue

                    if not rule.id:
                        rule.id = generate_id()
                    rule.created_at = rule.created_at or now_iso()
                    rule.updated_at = now_iso()

                    storage.rules[rule_type].append(rule.to_json_dict())
                    existing.append(rule)
                    result.imported += 1
                    result.imported_by_type[rule_type] = result.imported_by_type.get(rule_type, 0) + 1
                except Exception as e:
                    logger.warning("rule_import_failed", rule_type=rule_type, rule_id=identifier, error=str(e))
                    result.errors.append(ItemError(entity="rule", identifier=identifier, error=str(e)))

        # Replace mode persists even an empty result so the old rules are gone
        if result.imported > 0 or options.import_mode == ImportMode.REPLACE:
            storage.touch()
            await self.save_storage(storage)

        if result.imported > 0:
            await self.core.events.emit(
                TransferEvent.RULES_UPDATED,
                {"imported": result.imported, "skipped": result.skipped, "source": "import"},
            )

        logger.info("rules_import_complete", imported=result.imported, skipped=result.skipped, errors=len(result.errors))
        return result

    def validate_rules_for_export(self, rules: Any) -> ValidationResult:
        if not isinstance(rules, dict):
            return ValidationResult.fail("Rules must be an object keyed by rule type")

        errors = []
        for rule_type, type_rules in rules.items():
            if not isinstance(type_rules, list):
                errors.append(f"Rules for type {rule_type} must be an array")
                continue
            for index, rule in enumerate(type_rules, start=1):
                if not isinstance(rule, dict) or not rule.get("id"):
                    errors.append(f"Rule {index} of type {rule_type} is missing an ID")
        return ValidationResult.fail("; ".join(errors)) if errors else ValidationResult.ok()

    def get_rules_statistics(self, rules: Any, metadata: dict[str, Any] | None = None) -> dict[str, Any]:
        by_type: dict[str, int] = {}
        if isinstance(rules, dict):
            by_type = {rule_type: len(group) for rule_type, group in rules.items() if isinstance(group, list)}
        return {"total": sum(by_type.values()), "byType": by_type, "metadata": metadata or {}}

    def analyze_rules(self, rules: Any) -> dict[str, list[str]]:
        warnings: list[str] = []
        suggestions: list[str] = []
        if not isinstance(rules, dict):
            return {"warnings": warnings, "suggestions": suggestions}

        all_rules = [
            (rule_type, rule)
            for rule_type, group in rules.items()
            if isinstance(group, list)
            for rule in group
            if isinstance(rule, dict)
        ]

        id_counts = Counter(rule["id"] for _, rule in all_rules if rule.get("id"))
        duplicate_ids = sorted(str(rule_id) for rule_id, count in id_counts.items() if count > 1)
        if duplicate_ids:
            warnings.append(f"Duplicate rule IDs found: {', '.join(duplicate_ids)}")

        unnamed = sum(1 for _, rule in all_rules if not rule.get("name"))
        if unnamed:
            suggestions.append(f"{unnamed} rule(s) have no name, consider naming them for easier management")

        if len(all_rules) > LARGE_RULE_SET:
            warnings.append(f"Large number of rules ({len(all_rules)}) may impact performance")

        disabled = sum(1 for _, rule in all_rules if rule.get("isEnabled") is False)
        if disabled:
            suggestions.append(f"{disabled} disabled rule(s) found, consider removing unused rules")

        return {"warnings": warnings, "suggestions": suggestions}


def _rule_identifier(rule: Any) -> str | None:
    if not isinstance(rule, dict):
        return None
    value = rule.get("id") or rule.get("name")
    return str(value) if value else None


def _parse_stored_rule(rule: dict[str, Any]) -> HeaderRule | PayloadRule | UrlRule | None:
    """Stored rules that no longer parse are ignored for duplicate detection."""
    try:
        return rule_adapter.validate_python(rule)
    except PydanticValidationError:
        return None
