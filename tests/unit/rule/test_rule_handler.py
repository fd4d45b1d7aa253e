"""Tests for rule export and import."""

import pytest

from configport.core.modules.rule.models import RulesStorage
from configport.core.modules.transfer.constants import TransferEvent
from configport.core.modules.transfer.models import ExportOptions, ImportOptions


def _import_options(mode="merge"):
    return ImportOptions.model_validate({"selectedItems": {"rules": True}, "importMode": mode})


class TestRuleStorage:
    @pytest.mark.asyncio
    async def test_key_follows_active_workspace(self, services):
        """Test that rules are stored per workspace."""
        assert await services.rules.storage_key() == "workspaces/ws-1/rules.json"

    @pytest.mark.asyncio
    async def test_empty_storage(self, services):
        """Test that missing storage reads as an empty envelope with every rule type."""
        storage = await services.rules.load_storage()
        assert storage.count() == 0
        assert set(storage.rules) == {"header", "payload", "url"}

    @pytest.mark.asyncio
    async def test_export(self, services, header_rule):
        """Test that rules and metadata are exported together."""
        storage = RulesStorage()
        storage.rules["header"].append({**header_rule, "type": "header"})
        storage.touch()
        await services.rules.save_storage(storage)

        exported = await services.rules.export_rules(ExportOptions.model_validate({"selectedItems": {"rules": True}}))

        assert exported["rules"]["header"][0]["headerName"] == "Authorization"
        assert exported["rules"]["url"] == []
        assert exported["rulesMetadata"]["totalRules"] == 1


class TestImportRules:
    @pytest.mark.asyncio
    async def test_partial_failure(self, services, header_rule):
        """Test that invalid rules are reported while valid ones are stored."""
        rules = {
            "header": [{"id": "bad", "headerValue": "x"}, header_rule],
            "payload": [{"name": "Mask", "matchPattern": "s"}],
        }
        result = await services.rules.import_rules(rules, _import_options())

        assert result.imported == 2
        assert result.imported_by_type == {"header": 1, "payload": 1}
        assert [error.identifier for error in result.errors] == ["bad"]

        storage = await services.rules.load_storage()
        payload_rule = storage.rules["payload"][0]
        assert payload_rule["id"]
        assert payload_rule["createdAt"]
        assert storage.metadata.total_rules == 2

    @pytest.mark.asyncio
    async def test_unknown_type(self, services):
        """Test that every rule under an unknown type is an item error."""
        result = await services.rules.import_rules({"cookie": [{"id": "c1"}, {"name": "c2"}]}, _import_options())
        assert result.imported == 0
        assert [error.error for error in result.errors] == ["Unknown rule type: cookie"] * 2

    @pytest.mark.asyncio
    async def test_merge_skips_existing(self, services, header_rule):
        """Test that rules already stored are skipped in merge mode."""
        await services.rules.import_rules({"header": [header_rule]}, _import_options())
        result = await services.rules.import_rules({"header": [header_rule]}, _import_options())
        assert (result.imported, result.skipped) == (0, 1)
        assert result.skipped_by_type == {"header": 1}

    @pytest.mark.asyncio
    async def test_replace(self, services, header_rule):
        """Test that replace mode drops rules of every type."""
        await services.rules.import_rules({"payload": [{"name": "Mask", "matchPattern": "s"}]}, _import_options())
        await services.rules.import_rules({"header": [header_rule]}, _import_options("replace"))

        storage = await services.rules.load_storage()
        assert storage.rules["payload"] == []
        assert [rule["id"] for rule in storage.rules["header"]] == ["r1"]

    @pytest.mark.asyncio
    async def test_updated_event(self, core, services, header_rule):
        """Test that listeners hear about imported rules."""
        received = []
        core.events.subscribe(TransferEvent.RULES_UPDATED, lambda event, detail: received.append(detail))
        await services.rules.import_rules({"header": [header_rule]}, _import_options())
        assert received == [{"imported": 1, "skipped": 0, "source": "import"}]


class TestRuleAnalysis:
    def test_validate_for_export(self, services, header_rule):
        """Test that rules without an id are reported."""
        result = services.rules.validate_rules_for_export({"header": [header_rule, {"name": "x"}]})
        assert result.error == "Rule 2 of type header is missing an ID"

    def test_statistics(self, services, payload):
        """Test counts per type and passed-through metadata."""
        stats = services.rules.get_rules_statistics(payload["rules"], payload["rulesMetadata"])
        assert stats["total"] == 2
        assert stats["metadata"]["totalRules"] == 2

    def test_analysis(self, services, header_rule):
        """Test duplicate ids, unnamed and disabled rules."""
        analysis = services.rules.analyze_rules(
            {"header": [header_rule, {**header_rule, "name": "", "isEnabled": False}]}
        )
        assert analysis["warnings"] == ["Duplicate rule IDs found: r1"]
        assert analysis["suggestions"] == [
            "1 rule(s) have no name, consider naming them for easier management",
            "1 disabled rule(s) found, consider removing unused rules",
        ]
