"""Per-entity upsert policies.

Each entity type declares how an incoming record is folded into the row
already stored under the same natural key. The functions here are pure so
the contract can be checked without a database.
"""

from __future__ import annotations

from typing import Literal, TypeVar

from pydantic import BaseModel

UpsertPolicy = Literal["skip", "overwrite", "fill_blanks", "merge_rates"]

ModelT = TypeVar("ModelT", bound=BaseModel)

ENTITY_UPSERT_POLICIES: dict[str, UpsertPolicy] = {
    "product": "overwrite",
    "finance_company": "overwrite",
    "finance_company_reference": "fill_blanks",
    "finance_product": "overwrite",
    "finance_loan_option": "merge_rates",
    "lh_notice": "skip",
    "sh_announcement": "overwrite",
    "youth_policy": "skip",
}

# Never taken from the incoming record.
IDENTITY_FIELDS = frozenset({"id", "product_id", "finance_product_id", "created_at"})

LOAN_RATE_FIELDS = (
    "lend_rate_min",
    "lend_rate_max",
    "lend_rate_avg",
    "credit_rate_type",
    "credit_rate_type_name",
    "credit_grade_1",
    "credit_grade_4",
    "credit_grade_5",
    "credit_grade_6",
    "credit_grade_10",
    "credit_grade_11",
    "credit_grade_12",
    "credit_grade_13",
    "credit_grade_avg",
    "updated_at",
)


def _is_blank(value: object) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def overwrite(existing: ModelT, incoming: ModelT) -> ModelT:
    changes = {
        name: getattr(incoming, name)
        for name in type(existing).model_fields
        if name not in IDENTITY_FIELDS
    }
    return existing.model_copy(update=changes)


def fill_blanks(existing: ModelT, incoming: ModelT) -> ModelT:
    changes = {
        name: getattr(incoming, name)
        for name in type(existing).model_fields
        if name not in IDENTITY_FIELDS
        and _is_blank(getattr(existing, name))
        and not _is_blank(getattr(incoming, name))
    }
    return existing.model_copy(update=changes)


def merge_rates(existing: ModelT, incoming: ModelT) -> ModelT:
    """Refresh rate fields and keep the previous average as history.

    The history and ``updated_at`` only move when the average itself
    changes, so an unchanged re-sync keeps the last real change visible.
    The option's identifying type names are left untouched.
    """
    changes = {name: getattr(incoming, name) for name in LOAN_RATE_FIELDS if name != "updated_at"}
    previous_avg = getattr(existing, "lend_rate_avg")
    if getattr(incoming, "lend_rate_avg") != previous_avg:
        changes["prev_lend_rate_avg"] = previous_avg
        changes["updated_at"] = getattr(incoming, "updated_at")
    return existing.model_copy(update=changes)


def apply_upsert_policy(policy: UpsertPolicy, existing: ModelT, incoming: ModelT) -> ModelT | None:
    """Return the row to store, or ``None`` when the existing row stays as is."""
    if policy == "skip":
        return None
    if policy == "overwrite":
        return overwrite(existing, incoming)
    if policy == "fill_blanks":
        merged = fill_blanks(existing, incoming)
        return None if merged == existing else merged
    if policy == "merge_rates":
        return merge_rates(existing, incoming)
    raise ValueError(f"Unsupported upsert policy: {policy}")


def upsert_entity(entity: str, existing: ModelT, incoming: ModelT) -> ModelT | None:
    return apply_upsert_policy(ENTITY_UPSERT_POLICIES[entity], existing, incoming)
