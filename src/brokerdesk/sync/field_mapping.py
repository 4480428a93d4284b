"""Write payload shapes for the known remote column conventions.

Defines:
- WritePayloads: a primary column mapping plus the fallback mapping for the
  same logical write under the alternate naming convention.
- insert_payloads()/update_payloads(): lower-case-concatenated primary
  (``lastcontact``), camelCase fallback (``lastContact``). Used by leads,
  tasks, events, transactions and messages.
- listing_*_payloads(): the current ``listings`` table (snake_case, with
  ``image_urls``); fallback omits the optional extended columns that older
  listings deployments do not have.
- legacy_property_*_payloads(): the legacy ``properties`` table (``images``,
  ``createdat`` with a ``createdAt`` fallback).

Insert payloads drop unset values. Update payloads keep every field the caller
set explicitly, including None, so a column can be cleared.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel

from src.brokerdesk.sync.normalizers import candidate_keys

Columns = dict[str, Any]

# Columns present on every legacy `properties` deployment
LEGACY_PROPERTY_COLUMNS: tuple[str, ...] = (
    "name",
    "address",
    "price",
    "type",
    "bedrooms",
    "bathrooms",
    "size",
    "status",
    "images",
)

# Optional `listings` columns missing from older listings deployments
LISTING_EXTENDED_COLUMNS: tuple[str, ...] = ("energy_class", "pets_allowed", "coordinates")


@dataclass(frozen=True)
class WritePayloads:
    """Primary and fallback column mappings for one logical write."""

    primary: Columns
    fallback: Columns | None = None


# ── Column conventions ──────────────────────────────────────────────────────


def lowercase_columns(camel: Columns) -> Columns:
    """``{"lastContact": v}`` -> ``{"lastcontact": v}``."""
    return {k.lower(): v for k, v in camel.items()}


def snake_columns(camel: Columns) -> Columns:
    """``{"lastContact": v}`` -> ``{"last_contact": v}``."""
    return {candidate_keys(k)[-1]: v for k, v in camel.items()}


def _camel_insert(data: BaseModel) -> Columns:
    dumped = data.model_dump(mode="json", by_alias=True)
    return {k: v for k, v in dumped.items() if v is not None}


def _camel_patch(patch: BaseModel) -> Columns:
    return patch.model_dump(mode="json", by_alias=True, exclude_unset=True)


# ── Generic entities ────────────────────────────────────────────────────────


def insert_payloads(data: BaseModel) -> WritePayloads:
    camel = _camel_insert(data)
    return WritePayloads(primary=lowercase_columns(camel), fallback=camel)


def update_payloads(patch: BaseModel) -> WritePayloads:
    camel = _camel_patch(patch)
    return WritePayloads(primary=lowercase_columns(camel), fallback=camel)


# ── Properties: current `listings` table ────────────────────────────────────


def _listing_columns(camel: Columns) -> Columns:
    columns = snake_columns(camel)
    if "images" in columns:
        columns["image_urls"] = columns.pop("images")
    return columns


def _without_extended(columns: Columns) -> Columns | None:
    reduced = {k: v for k, v in columns.items() if k not in LISTING_EXTENDED_COLUMNS}
    return reduced if reduced != columns else None


def listing_insert_payloads(data: BaseModel) -> WritePayloads:
    camel = _camel_insert(data)
    camel.setdefault("images", [])
    camel.setdefault("petsAllowed", False)
    primary = _listing_columns(camel)
    return WritePayloads(primary=primary, fallback=_without_extended(primary))


def listing_update_payloads(patch: BaseModel) -> WritePayloads:
    primary = _listing_columns(_camel_patch(patch))
    return WritePayloads(primary=primary, fallback=_without_extended(primary))


# ── Properties: legacy `properties` table ───────────────────────────────────


def legacy_property_insert_payloads(data: BaseModel) -> WritePayloads:
    camel = _camel_insert(data)
    base = {k: camel[k] for k in LEGACY_PROPERTY_COLUMNS if k in camel}
    base.setdefault("images", [])
    created_at = camel.get("createdAt")
    if created_at is None:
        return WritePayloads(primary=base)
    return WritePayloads(
        primary={**base, "createdat": created_at},
        fallback={**base, "createdAt": created_at},
    )


def legacy_property_update_payloads(patch: BaseModel) -> WritePayloads:
    camel = _camel_patch(patch)
    return WritePayloads(primary={k: camel[k] for k in LEGACY_PROPERTY_COLUMNS if k in camel})
