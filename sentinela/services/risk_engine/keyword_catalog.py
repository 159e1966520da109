"""Keyword catalog read interface.

The catalog belongs to the expert-management side of the product; the
engine only reads the active rules of one scope per invocation.

Implementations:
- InMemoryKeywordCatalog: fixtures, tests and small deployments
- PostgresKeywordCatalog: the `keywords` table managed by the admin app
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional

from sentinela.shared.database import (
    BaseRepository,
    ConnectionManager,
    DuplicateError,
    RepositoryError,
)
from sentinela.shared.models import KeywordRule, SymptomCategory
from .exceptions import CatalogUnavailableError

logger = logging.getLogger(__name__)


class KeywordCatalog(ABC):
    """Read-only source of keyword rules."""

    @abstractmethod
    def list_active_rules(self, scope: str) -> List[KeywordRule]:
        """Return the active rules of a scope.

        Raises:
            CatalogUnavailableError: If the rules cannot be read
        """
        pass


class InMemoryKeywordCatalog(KeywordCatalog):
    """Catalog held in process memory.

    Enforces at most one active rule per (scope, phrase, symptom category).
    """

    def __init__(self, rules: Iterable[KeywordRule] = ()):
        self._rules: List[KeywordRule] = []
        for rule in rules:
            self.add(rule)

    def add(self, rule: KeywordRule) -> None:
        """Add a rule.

        Raises:
            DuplicateError: If an active rule with the same identity exists
        """
        if rule.active and any(
            existing.active and existing.identity == rule.identity
            for existing in self._rules
        ):
            raise DuplicateError(
                f"Active keyword '{rule.phrase}' ({rule.symptom_category.value}) "
                f"already exists in scope {rule.scope}"
            )
        self._rules.append(rule)

    def list_active_rules(self, scope: str) -> List[KeywordRule]:
        return [r for r in self._rules if r.active and r.scope == scope]

    @classmethod
    def from_records(cls, records: Iterable[Dict[str, Any]]) -> "InMemoryKeywordCatalog":
        """Build from exported catalog documents.

        Accepts both the admin export keys (keyword, symptom, institution,
        expertId, isActive) and the field names of KeywordRule.
        """
        rules = []
        for record in records:
            rules.append(KeywordRule(
                symptom_category=SymptomCategory.from_label(
                    record.get("symptom", record.get("symptom_category", "other"))
                ),
                phrase=record.get("keyword", record.get("phrase", "")),
                weight=int(record.get("weight", 3)),
                scope=str(record.get("institution", record.get("scope", ""))),
                owner=str(record.get("expertId", record.get("owner", ""))),
                active=bool(record.get("isActive", record.get("active", True))),
            ))
        return cls(rules)


class PostgresKeywordCatalog(BaseRepository[KeywordRule], KeywordCatalog):
    """Keyword rules stored in PostgreSQL.

    Table columns: symptom, keyword, weight, institution_id, expert_id,
    is_active.
    """

    _SELECT_ACTIVE = (
        "SELECT symptom, keyword, weight, institution_id, expert_id, is_active "
        "FROM {table} WHERE institution_id = %s AND is_active = TRUE "
        "ORDER BY weight DESC, keyword"
    )

    def __init__(
        self,
        connection_manager: ConnectionManager,
        table_name: str = "keywords",
    ):
        super().__init__(connection_manager, table_name)

    def _row_to_entity(self, row: tuple) -> KeywordRule:
        symptom, keyword, weight, institution_id, expert_id, is_active = row
        return KeywordRule(
            symptom_category=SymptomCategory.from_label(symptom),
            phrase=keyword,
            weight=int(weight),
            scope=str(institution_id),
            owner=str(expert_id or ""),
            active=bool(is_active),
        )

    def list_active_rules(self, scope: str) -> List[KeywordRule]:
        try:
            rules = self._fetch_all(
                self._SELECT_ACTIVE.format(table=self.table_name),
                (scope,),
            )
        except (RepositoryError, ValueError) as e:
            raise CatalogUnavailableError(f"Keyword catalog unavailable: {e}") from e

        return _dedupe(rules, scope)


def _dedupe(rules: List[KeywordRule], scope: Optional[str]) -> List[KeywordRule]:
    """Keep the first active rule per identity."""
    seen = set()
    unique = []
    for rule in rules:
        if rule.identity in seen:
            logger.warning(
                "KEYWORD_RULE_DUPLICATE_SKIPPED",
                extra={"scope": scope, "keyword": rule.phrase}
            )
            continue
        seen.add(rule.identity)
        unique.append(rule)
    return unique
