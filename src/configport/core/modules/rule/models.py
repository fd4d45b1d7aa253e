from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import Field, TypeAdapter

from configport.core.models import CamelModel
from configport.utils import now_iso

RULES_STORAGE_VERSION = "3.0.0"


class RuleType(StrEnum):
    HEADER = "header"
    PAYLOAD = "payload"
    URL = "url"


class UrlAction(StrEnum):
    MODIFY = "modify"
    REDIRECT = "redirect"
    BLOCK = "block"


class BaseRule(CamelModel):
    id: str | None = None
    name: str = ""
    description: str = ""
    is_enabled: bool = True
    domains: list[str] = []
    created_at: str | None = None
    updated_at: str | None = None


class HeaderRule(BaseRule):
    type: Literal["header"] = "header"
    header_name: str = Field(min_length=1)
    header_value: str = ""
    is_dynamic: bool = False
    source_id: str | None = None
    prefix: str = ""
    suffix: str = ""
    is_response: bool = False
    tag: str = ""
    env_vars: list[str] = []


class PayloadRule(BaseRule):
    type: Literal["payload"] = "payload"
    match_pattern: str = Field(min_length=1)
    match_type: str = "contains"
    replace_with: str = ""
    is_request: bool = True
    is_response: bool = False
    content_type: str = "any"


class UrlRule(BaseRule):
    type: Literal["url"] = "url"
    match_pattern: str = Field(min_length=1)
    match_type: str = "contains"
    replace_pattern: str = ""
    redirect_to: str = ""
    modify_params: list[dict[str, Any]] = []
    action: UrlAction = UrlAction.MODIFY


Rule = Annotated[HeaderRule | PayloadRule | UrlRule, Field(discriminator="type")]

rule_adapter: TypeAdapter[HeaderRule | PayloadRule | UrlRule] = TypeAdapter(Rule)


class RulesMetadata(CamelModel):
    last_updated: str = Field(default_factory=now_iso)
    total_rules: int = 0


class RulesStorage(CamelModel):
    """Per-workspace rule envelope persisted at `workspaces/<id>/rules.json`."""

    version: str = RULES_STORAGE_VERSION
    rules: dict[RuleType, list[dict[str, Any]]] = Field(default_factory=lambda: {rule_type: [] for rule_type in RuleType})
    metadata: RulesMetadata = Field(default_factory=RulesMetadata)

    def count(self) -> int:
        return sum(len(rules) for rules in self.rules.values())

    def touch(self) -> None:
        """Recompute metadata after a change."""
        self.metadata = RulesMetadata(total_rules=self.count())
