"""Tests for duplicate detection."""

import pytest

from configport.core.modules.environment.models import EnvironmentVariable
from configport.core.modules.proxy_rule.models import DynamicProxyRule, HeaderMod, StaticProxyRule
from configport.core.modules.rule.models import HeaderRule, PayloadRule, UrlRule
from configport.core.modules.source.models import Source
from configport.core.modules.transfer.duplicates import (
    YieldPolicy,
    are_header_modifications_equal,
    batch_duplicate_detection,
    create_duplicate_detector,
    generate_unique_name,
    is_environment_variable_duplicate,
    is_proxy_rule_duplicate,
    is_rule_duplicate,
    is_source_duplicate,
    is_workspace_name_duplicate,
    iter_duplicate_batches,
)
from configport.core.modules.workspace.models import Workspace


def _static(pattern="*.example.com", headers=None):
    return StaticProxyRule(pattern=pattern, domains=["example.com"], header_name="X-Env", headers=headers)


class TestSourceDuplicates:
    def test_same_type_and_path(self):
        """Test that file sources with the same path are duplicates regardless of id."""
        existing = [Source(source_id="1", source_type="file", source_path="/tmp/token")]
        candidate = Source(source_id="99", source_type="file", source_path="/tmp/token")
        assert is_source_duplicate(candidate, existing)

    def test_http_method_distinguishes(self):
        """Test that the same URL with a different method is a new source."""
        existing = [Source(source_id="1", source_type="http", source_path="https://a.io", request_options={"method": "GET"})]
        post = Source(source_id="2", source_type="http", source_path="https://a.io", request_options={"method": "POST"})
        get = Source(source_id="3", source_type="http", source_path="https://a.io")
        assert not is_source_duplicate(post, existing)
        assert is_source_duplicate(get, existing)

    def test_different_type(self):
        """Test that type is part of identity."""
        existing = [Source(source_id="1", source_type="env", source_path="TOKEN")]
        assert not is_source_duplicate(Source(source_id="1", source_type="file", source_path="TOKEN"), existing)


class TestProxyRuleDuplicates:
    def test_reflexive(self):
        """Test that a rule is a duplicate of itself."""
        rule = _static(headers=[HeaderMod(name="A", value="1")])
        assert is_proxy_rule_duplicate(rule, [rule])

    def test_header_order_ignored(self):
        """Test that headers are compared as an unordered collection."""
        first = _static(headers=[HeaderMod(name="A", value="1"), HeaderMod(name="B", value="2")])
        second = _static(headers=[HeaderMod(name="B", value="2"), HeaderMod(name="A", value="1")])
        assert is_proxy_rule_duplicate(second, [first])

    def test_header_value_differs(self):
        """Test that a changed static header value is a different rule."""
        first = _static(headers=[HeaderMod(name="A", value="1")])
        second = _static(headers=[HeaderMod(name="A", value="2")])
        assert not is_proxy_rule_duplicate(second, [first])

    def test_missing_headers_on_one_side(self):
        """Test that headers present on only one side never match."""
        assert not is_proxy_rule_duplicate(_static(headers=[HeaderMod(name="A")]), [_static()])
        assert is_proxy_rule_duplicate(_static(), [_static()])

    def test_dynamic_header_compares_source(self):
        """Test that dynamic headers compare source, prefix and suffix instead of value."""
        token = HeaderMod(name="Auth", is_dynamic=True, source_id="1", prefix="Bearer ")
        first = DynamicProxyRule(pattern="*", header_rule_id="r1", headers=[token])
        same = DynamicProxyRule(pattern="*", header_rule_id="r2", headers=[token.model_copy(update={"value": "ignored"})])
        other = DynamicProxyRule(pattern="*", header_rule_id="r1", headers=[token.model_copy(update={"source_id": "2"})])
        assert is_proxy_rule_duplicate(same, [first])
        assert not is_proxy_rule_duplicate(other, [first])

    def test_sorted_header_comparison(self):
        """Test the name-sorted list comparison."""
        first = [HeaderMod(name="B", value="2"), HeaderMod(name="A", value="1")]
        second = [HeaderMod(name="A", value="1"), HeaderMod(name="B", value="2")]
        assert are_header_modifications_equal(first, second)
        assert not are_header_modifications_equal(first, None)
        assert are_header_modifications_equal(None, None)


class TestRuleDuplicates:
    def test_id_match_is_authoritative(self):
        """Test that rules sharing an id are duplicates even with different content."""
        existing = [HeaderRule(id="r1", name="Old", header_name="X-A")]
        assert is_rule_duplicate(HeaderRule(id="r1", name="New", header_name="X-B"), existing)
        assert not is_rule_duplicate(HeaderRule(id="r2", name="Old", header_name="X-A"), existing)

    def test_content_comparison_without_id(self):
        """Test that rules without an id fall back to content comparison."""
        existing = [PayloadRule(id="r1", name="Mask", match_pattern="secret", replace_with="***")]
        assert is_rule_duplicate(PayloadRule(name="Mask", match_pattern="secret", replace_with="***"), existing)
        assert not is_rule_duplicate(PayloadRule(name="Mask", match_pattern="secret", replace_with="---"), existing)

    def test_domains_compared_as_set(self):
        """Test that domain order does not matter."""
        existing = [HeaderRule(id="r1", header_name="X", domains=["a.io", "b.io"])]
        assert is_rule_duplicate(HeaderRule(header_name="X", domains=["b.io", "a.io"]), existing)

    def test_url_redirect_target(self):
        """Test that redirect rules compare their target."""
        existing = [UrlRule(id="u1", match_pattern="/old", action="redirect", redirect_to="/new")]
        assert not is_rule_duplicate(UrlRule(match_pattern="/old", action="redirect", redirect_to="/other"), existing)


class TestNames:
    def test_environment_variable_exists_regardless_of_value(self):
        """Test that an existing variable is a duplicate even with another value."""
        environments = {"Default": {"API_KEY": EnvironmentVariable(value="x")}}
        assert is_environment_variable_duplicate("API_KEY", "Default", environments)
        assert not is_environment_variable_duplicate("API_KEY", "Staging", environments)
        assert not is_environment_variable_duplicate("", "Default", environments)

    def test_workspace_name(self):
        """Test that workspace names are compared exactly."""
        workspaces = [Workspace(name="Team")]
        assert is_workspace_name_duplicate("Team", workspaces)
        assert not is_workspace_name_duplicate("team", workspaces)

    @pytest.mark.parametrize(
        ("existing", "expected"),
        [
            ([], "Name"),
            (["Name"], "Name (Imported)"),
            (["Name", "Name (Imported)"], "Name (Imported 2)"),
            (["Name", "Name (Imported)", "Name (Imported 2)"], "Name (Imported 3)"),
        ],
    )
    def test_generate_unique_name(self, existing, expected):
        """Test the numbered suffix sequence."""
        assert generate_unique_name("Name", existing, "Imported") == expected


class TestBatchDetection:
    @pytest.mark.asyncio
    async def test_preserves_order(self):
        """Test that results come back in input order across batches."""
        existing = [Source(source_id="1", source_type="env", source_path="B")]
        items = [Source(source_id=str(i), source_type="env", source_path=name) for i, name in enumerate("ABCBA")]
        checks = await batch_duplicate_detection(items, existing, is_source_duplicate, batch_size=2)
        assert [check.item.source_path for check in checks] == list("ABCBA")
        assert [check.is_duplicate for check in checks] == [False, True, False, True, False]

    @pytest.mark.asyncio
    async def test_batches_are_chunked(self):
        """Test that the iterator yields chunks of the configured size."""
        batches = [
            batch async for batch in iter_duplicate_batches(list(range(5)), [], lambda item, existing: False, YieldPolicy(2))
        ]
        assert [len(batch) for batch in batches] == [2, 2, 1]

    @pytest.mark.asyncio
    async def test_invalid_batch_size(self):
        """Test that a non-positive batch size is rejected."""
        with pytest.raises(ValueError, match="batch_size"):
            await batch_duplicate_detection([1], [], lambda item, existing: False, batch_size=0)

    def test_unknown_type_never_duplicate(self):
        """Test that detectors for unknown types report no duplicates."""
        assert create_duplicate_detector("environments")("x", ["x"]) is False
        assert create_duplicate_detector("sources") is is_source_duplicate
