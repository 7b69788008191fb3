from __future__ import annotations

from typing import Any, List, Optional

from loguru import logger
from pydantic import BaseModel, ConfigDict, ValidationError


class SmartFillActions(BaseModel):
    model_config = ConfigDict(extra="ignore")

    clearClient: bool = False
    clearItems: bool = False
    markAsUnpaid: bool = False
    markAsPaid: bool = False


class SmartFillClientDetails(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    address: Optional[str] = None
    gstin: Optional[str] = None
    phone: Optional[str] = None


class SmartFillItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    description: str
    quantity: float
    price: float  # tax-inclusive amount as spoken by the user


class SmartFillPatch(BaseModel):
    model_config = ConfigDict(extra="ignore")

    actions: Optional[SmartFillActions] = None
    clientDetails: Optional[SmartFillClientDetails] = None
    items: Optional[List[SmartFillItem]] = None


def _section(model: type[BaseModel], raw: Any, name: str) -> Optional[BaseModel]:
    """
    Validate one section. Fields that fail validation are dropped and the
    rest kept; the section is ignored only when it is not an object or a
    required field is missing or unusable.
    """
    if raw is None:
        return None
    if not isinstance(raw, dict):
        logger.warning("Ignoring smart-fill section={} of type={}", name, type(raw).__name__)
        return None
    try:
        return model.model_validate(raw)
    except ValidationError as e:
        bad = {err["loc"][0] for err in e.errors() if err["loc"]}
        logger.warning("Dropping malformed smart-fill fields section={} fields={}", name, sorted(map(str, bad)))
    try:
        return model.model_validate({k: v for k, v in raw.items() if k not in bad})
    except ValidationError as e:
        logger.warning("Ignoring malformed smart-fill section={} err={}", name, str(e))
        return None


def parse_smart_fill_payload(payload: Any) -> SmartFillPatch:
    """
    Validate the extraction service output section by section.

    Unknown keys and malformed fields are dropped, a section that is not an
    object is ignored and items missing a usable description, quantity or
    price are skipped individually. A payload that is not an object at all
    raises ValueError so the caller can treat the whole call as failed.
    """
    if not isinstance(payload, dict):
        raise ValueError(f"Smart-fill payload must be an object, got {type(payload).__name__}")

    items: Optional[List[SmartFillItem]] = None
    raw_items = payload.get("items")
    if isinstance(raw_items, list):
        items = []
        for i, raw in enumerate(raw_items):
            item = _section(SmartFillItem, raw, f"items[{i}]")
            if item is not None:
                items.append(item)
    elif raw_items is not None:
        logger.warning("Ignoring smart-fill items of type={}", type(raw_items).__name__)

    return SmartFillPatch(
        actions=_section(SmartFillActions, payload.get("actions"), "actions"),
        clientDetails=_section(SmartFillClientDetails, payload.get("clientDetails"), "clientDetails"),
        items=items,
    )
