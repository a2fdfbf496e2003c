from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import StrEnum
from types import MappingProxyType
from typing import Any, Mapping

from deal_reconcile.errors import DealParseError
from deal_reconcile.models import Deal


class FieldTag(StrEnum):
    ADDRESS = "ADDRESS"
    AMOUNT = "AMOUNT"
    CHAT_LINK = "CHAT_LINK"
    CITY = "CITY"
    CREATED = "CREATED"
    EMAIL = "EMAIL"
    ID = "ID"
    MODIFIED = "MODIFIED"
    NAME = "NAME"
    PHONE = "PHONE"
    PIPELINE = "PIPELINE"
    REGION = "REGION"
    STAGE = "STAGE"
    SUB_PIPELINE = "SUB_PIPELINE"


@dataclass(frozen=True)
class DealSchema:
    """Maps source-system columns to stable semantic tags."""

    tag_to_column: Mapping[FieldTag, str]

    @classmethod
    def from_mapping(cls, mapping: Mapping[FieldTag, str]) -> "DealSchema":
        return cls(tag_to_column=MappingProxyType(dict(mapping)))

    def column_for(self, tag: FieldTag) -> str | None:
        return self.tag_to_column.get(tag)

    def text_for(self, attributes: Mapping[str, Any], tag: FieldTag) -> str | None:
        column = self.column_for(tag)
        if column is None:
            return None
        value = attributes.get(column)
        if value is None:
            return None
        # Pipeline columns arrive as {"name": ..., "id": ...} lookups.
        if isinstance(value, Mapping):
            value = value.get("name")
            if value is None:
                return None
        text = str(value).strip()
        return text or None

    def parse(self, attributes: Mapping[str, Any]) -> Deal:
        deal_id = self.text_for(attributes, FieldTag.ID)
        if deal_id is None:
            raise DealParseError("record has no id")

        created = _parse_timestamp(self.text_for(attributes, FieldTag.CREATED))
        if created is None:
            raise DealParseError(f"deal {deal_id} has no valid creation time", record_id=deal_id)
        modified = _parse_timestamp(self.text_for(attributes, FieldTag.MODIFIED)) or created

        return Deal(
            deal_id=deal_id,
            name=self.text_for(attributes, FieldTag.NAME) or "",
            created_time=created,
            modified_time=modified,
            stage=self.text_for(attributes, FieldTag.STAGE) or "",
            phone=self.text_for(attributes, FieldTag.PHONE),
            email=self.text_for(attributes, FieldTag.EMAIL),
            chat_link=self.text_for(attributes, FieldTag.CHAT_LINK),
            address=self.text_for(attributes, FieldTag.ADDRESS),
            city=self.text_for(attributes, FieldTag.CITY),
            region=self.text_for(attributes, FieldTag.REGION),
            amount=_parse_amount(self.text_for(attributes, FieldTag.AMOUNT)),
            pipeline=self.text_for(attributes, FieldTag.PIPELINE),
            sub_pipeline=self.text_for(attributes, FieldTag.SUB_PIPELINE),
            attributes=MappingProxyType(dict(attributes)),
        )


@dataclass(frozen=True)
class PipelineLayout:
    """Which pipeline tags make up the sales, logistics and shipping stages.

    ``pipeline`` of ``None`` accepts records from any top-level pipeline.
    """

    pipeline: str | None
    sales: str
    logistics: str
    shipping: str


def _parse_timestamp(text: str | None) -> datetime | None:
    if text is None:
        return None
    try:
        value = datetime.fromisoformat(text)
    except ValueError:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def _parse_amount(text: str | None) -> float | None:
    if text is None:
        return None
    try:
        return float(text.replace(",", ""))
    except ValueError:
        return None
