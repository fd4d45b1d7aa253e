from typing import Annotated, Any

from pydantic import Discriminator, Field, Tag, TypeAdapter

from configport.core.models import CamelModel


class HeaderMod(CamelModel):
    """Header modification applied by a proxy rule. Dynamic headers take their value from a source."""

    name: str
    value: str | None = None
    is_dynamic: bool = False
    source_id: str | None = None
    prefix: str | None = None
    suffix: str | None = None


class StaticProxyRule(CamelModel):
    id: str | None = None
    pattern: str = ""
    is_dynamic: bool = False
    domains: list[str] = Field(min_length=1)
    header_name: str = Field(min_length=1)
    header_value: str = ""
    headers: list[HeaderMod] | None = None


class DynamicProxyRule(CamelModel):
    id: str | None = None
    pattern: str = ""
    is_dynamic: bool = True
    header_rule_id: str = Field(min_length=1)
    headers: list[HeaderMod] | None = None


def proxy_rule_kind(value: Any) -> str:
    """Dynamic when flagged as such or when it references a header rule."""
    if isinstance(value, dict):
        is_dynamic = value.get("isDynamic", value.get("is_dynamic"))
        header_rule_id = value.get("headerRuleId", value.get("header_rule_id"))
    else:
        is_dynamic = getattr(value, "is_dynamic", None)
        header_rule_id = getattr(value, "header_rule_id", None)
    return "dynamic" if is_dynamic is True or header_rule_id else "static"


ProxyRule = Annotated[
    Annotated[StaticProxyRule, Tag("static")] | Annotated[DynamicProxyRule, Tag("dynamic")],
    Discriminator(proxy_rule_kind),
]

proxy_rule_adapter: TypeAdapter[StaticProxyRule | DynamicProxyRule] = TypeAdapter(ProxyRule)
