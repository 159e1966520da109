"""Tests for keyword catalog implementations."""
import pytest
from unittest.mock import MagicMock

from sentinela.shared.database import DuplicateError
from sentinela.shared.models import KeywordRule, SymptomCategory
from sentinela.services.risk_engine.exceptions import CatalogUnavailableError
from sentinela.services.risk_engine.keyword_catalog import (
    InMemoryKeywordCatalog,
    PostgresKeywordCatalog,
)


def _manager(rows=None, error=None):
    cursor = MagicMock()
    cursor.__enter__.return_value = cursor
    if error is not None:
        cursor.execute.side_effect = error
    cursor.fetchall.return_value = rows or []

    conn = MagicMock()
    conn.cursor.return_value = cursor

    manager = MagicMock()
    manager.get_connection.return_value.__enter__.return_value = conn
    return manager, cursor


class TestKeywordRule:

    def test_phrase_normalized(self):
        rule = KeywordRule(SymptomCategory.ANXIETY, "  Ataque   de PÁNICO ", 4, "inst_001")
        assert rule.phrase == "ataque de pánico"

    @pytest.mark.parametrize("weight", [0, 6, -1])
    def test_weight_out_of_range(self, weight):
        with pytest.raises(ValueError):
            KeywordRule(SymptomCategory.ANXIETY, "ansiedad", weight, "inst_001")

    def test_empty_phrase_rejected(self):
        with pytest.raises(ValueError):
            KeywordRule(SymptomCategory.ANXIETY, "   ", 3, "inst_001")

    def test_spanish_symptom_labels(self):
        assert SymptomCategory.from_label("Depresión") == SymptomCategory.DEPRESSION
        assert SymptomCategory.from_label("estres") == SymptomCategory.STRESS
        assert SymptomCategory.from_label("panic") == SymptomCategory.PANIC


class TestInMemoryCatalog:

    def test_lists_active_rules_of_scope(self):
        catalog = InMemoryKeywordCatalog([
            KeywordRule(SymptomCategory.ANXIETY, "ansiedad", 3, "inst_001"),
            KeywordRule(SymptomCategory.ANXIETY, "nervios", 2, "inst_001", active=False),
            KeywordRule(SymptomCategory.STRESS, "estrés", 3, "inst_002"),
        ])

        rules = catalog.list_active_rules("inst_001")

        assert [r.phrase for r in rules] == ["ansiedad"]

    def test_duplicate_active_rule_rejected(self):
        catalog = InMemoryKeywordCatalog([KeywordRule(SymptomCategory.ANXIETY, "ansiedad", 3, "inst_001")])

        with pytest.raises(DuplicateError):
            catalog.add(KeywordRule(SymptomCategory.ANXIETY, "Ansiedad", 4, "inst_001"))

    def test_same_phrase_other_category_allowed(self):
        catalog = InMemoryKeywordCatalog([
            KeywordRule(SymptomCategory.ANXIETY, "nervios", 3, "inst_001"),
            KeywordRule(SymptomCategory.STRESS, "nervios", 3, "inst_001"),
        ])
        assert len(catalog.list_active_rules("inst_001")) == 2

    def test_inactive_duplicate_allowed(self):
        catalog = InMemoryKeywordCatalog([KeywordRule(SymptomCategory.ANXIETY, "ansiedad", 3, "inst_001")])
        catalog.add(KeywordRule(SymptomCategory.ANXIETY, "ansiedad", 3, "inst_001", active=False))

        assert len(catalog.list_active_rules("inst_001")) == 1

    def test_from_admin_export(self):
        catalog = InMemoryKeywordCatalog.from_records([
            {"keyword": "Insomnio", "symptom": "insomnio", "weight": 2,
             "institution": "inst_001", "expertId": "exp_9", "isActive": True},
            {"phrase": "pánico", "symptom_category": "panic", "weight": 4, "scope": "inst_001"},
        ])

        rules = catalog.list_active_rules("inst_001")

        assert rules[0].phrase == "insomnio"
        assert rules[0].symptom_category == SymptomCategory.INSOMNIA
        assert rules[0].owner == "exp_9"
        assert rules[1].symptom_category == SymptomCategory.PANIC


class TestPostgresCatalog:

    def test_rows_mapped_to_rules(self):
        manager, cursor = _manager(rows=[
            ("ansiedad", "Me siento ansioso", 3, "inst_001", "exp_1", True),
            ("depresion", "sin ganas de vivir", 5, "inst_001", None, True),
        ])
        catalog = PostgresKeywordCatalog(manager)

        rules = catalog.list_active_rules("inst_001")

        assert [r.phrase for r in rules] == ["me siento ansioso", "sin ganas de vivir"]
        assert rules[1].symptom_category == SymptomCategory.DEPRESSION
        assert rules[1].owner == ""
        query, params = cursor.execute.call_args[0]
        assert "FROM keywords" in query
        assert params == ("inst_001",)

    def test_duplicates_skipped(self):
        manager, _ = _manager(rows=[
            ("ansiedad", "ansiedad", 3, "inst_001", "exp_1", True),
            ("ansiedad", "Ansiedad", 4, "inst_001", "exp_2", True),
        ])

        rules = PostgresKeywordCatalog(manager).list_active_rules("inst_001")

        assert len(rules) == 1
        assert rules[0].weight == 3

    def test_driver_error_is_catalog_unavailable(self):
        manager, _ = _manager(error=Exception("connection refused"))

        with pytest.raises(CatalogUnavailableError):
            PostgresKeywordCatalog(manager).list_active_rules("inst_001")

    def test_invalid_row_is_catalog_unavailable(self):
        manager, _ = _manager(rows=[("ansiedad", "ansiedad", 9, "inst_001", "exp_1", True)])

        with pytest.raises(CatalogUnavailableError):
            PostgresKeywordCatalog(manager).list_active_rules("inst_001")

    def test_null_weight_is_catalog_unavailable(self):
        manager, _ = _manager(rows=[("ansiedad", "suicidar", None, "inst_001", None, True)])

        with pytest.raises(CatalogUnavailableError):
            PostgresKeywordCatalog(manager).list_active_rules("inst_001")
