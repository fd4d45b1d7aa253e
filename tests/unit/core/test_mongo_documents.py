"""Tests for the MongoDB environment document layout."""

from configport.core.adapters.mongo import variables_from_document, variables_to_document
from configport.core.modules.environment.models import EnvironmentVariable


class TestEnvironmentDocuments:
    def test_names_are_values_not_keys(self):
        """Test that dotted and dollar-prefixed names never become document keys."""
        variables = {
            "api.host": EnvironmentVariable(value="example.com"),
            "$TOKEN": EnvironmentVariable(value="abc", is_secret=True),
        }

        entries = variables_to_document(variables)

        assert [entry["name"] for entry in entries] == ["api.host", "$TOKEN"]
        assert all(set(entry) == {"name", "value", "isSecret", "updatedAt"} for entry in entries)

    def test_read_back(self):
        """Test that stored entries are read back under their names without a name field."""
        entries = [
            {"name": "api.host", "value": "example.com", "isSecret": False, "updatedAt": "2024-01-01T00:00:00.000Z"},
            {"name": "$TOKEN", "value": "abc", "isSecret": True, "updatedAt": "2024-01-01T00:00:00.000Z"},
        ]

        variables = variables_from_document(entries)

        assert set(variables) == {"api.host", "$TOKEN"}
        assert variables["$TOKEN"].is_secret
        assert "name" not in variables["api.host"].to_json_dict()
