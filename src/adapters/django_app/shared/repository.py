"""
Repository helpers shared by the Django repositories.

- compare_and_set: optimistic concurrency write used by every aggregate
- PaginationParams / PaginatedResult: slicing of list endpoints

Principles:
- Repositories are stateless
- No business logic, persistence only
"""

from dataclasses import dataclass
from typing import Any, Dict, Generic, List, Type, TypeVar
import logging

from django.db import models, transaction

from src.core.shared.exceptions import ConcurrencyError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def compare_and_set(model_cls: Type[models.Model], entity: Any, fields: Dict[str, Any], label: str) -> None:
    """
    Insert (version 0) or update the row only if its version is unchanged.

    Bumps ``entity.version`` on success.

    Raises:
        ConcurrencyError: Another writer got there first
    """
    if entity.version == 0:
        if model_cls.objects.filter(pk=entity.id).exists():
            raise ConcurrencyError(f"{label} {entity.id} already exists")
        with transaction.atomic():
            model_cls.objects.create(pk=entity.id, version=1, **fields)
    else:
        updated = (
            model_cls.objects
            .filter(pk=entity.id, version=entity.version)
            .update(version=entity.version + 1, **fields)
        )
        if updated == 0:
            logger.warning(f"Stale write rejected: {label} {entity.id} v{entity.version}")
            raise ConcurrencyError(
                f"{label} {entity.id} was modified concurrently "
                f"(expected version {entity.version})"
            )
    entity.version += 1


@dataclass
class PaginationParams:
    page: int = 1
    per_page: int = 20

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page


@dataclass
class PaginatedResult(Generic[T]):
    items: List[T]
    total: int
    page: int
    per_page: int

    @property
    def total_pages(self) -> int:
        return (self.total + self.per_page - 1) // self.per_page

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @classmethod
    def from_list(cls, rows: List[T], params: PaginationParams) -> "PaginatedResult[T]":
        return cls(
            items=rows[params.offset:params.offset + params.per_page],
            total=len(rows),
            page=params.page,
            per_page=params.per_page,
        )

    def meta(self) -> Dict[str, Any]:
        return {
            'total': self.total,
            'page': self.page,
            'per_page': self.per_page,
            'total_pages': self.total_pages,
            'has_next': self.has_next,
        }
