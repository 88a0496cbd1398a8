import re
from unittest.mock import MagicMock

import pytest
from sqlalchemy.dialects import postgresql

from advo.search import SearchCriteria, _filtered_query, _full_text_query


class RecordingSession:
    """Collects the statements a query builds instead of running them."""

    def __init__(self, total: int = 5):
        self.total = total
        self.statements = []

    def exec(self, statement):  # type: ignore[no-untyped-def]
        self.statements.append(statement)
        result = MagicMock()
        result.one.return_value = self.total
        result.all.return_value = []
        return result


def compile_full_text(criteria: SearchCriteria, *, total: int = 5):
    session = RecordingSession(total=total)
    _full_text_query(session, criteria, paginate=True)
    compiled = session.statements[-1].compile(dialect=postgresql.dialect())
    return " ".join(str(compiled).split()), compiled.params, session


def test_list_filters_compare_whole_entries():
    sql, params, _ = compile_full_text(
        SearchCriteria(category=["Food", " HEALTH "], type=["Nonprofit"], age_range="Youth")
    )
    for column in ("category", "type", "target_audience"):
        assert f"json_array_elements_text(resource.{column})" in sql
    assert sql.count("EXISTS (SELECT") == 3
    assert "@@" not in sql
    assert ["food", "health"] in params.values()
    assert ["nonprofit"] in params.values()
    assert ["youth"] in params.values()


def test_zip_clause_is_dropped_for_distance_search():
    sql, _, _ = compile_full_text(SearchCriteria(zip_code="10001"))
    assert "left(coalesce(" in sql

    sql, _, _ = compile_full_text(SearchCriteria(zip_code="10001", distance=5))
    assert "left(coalesce(" not in sql


def test_description_alone_filters_and_ranks():
    sql, _, _ = compile_full_text(SearchCriteria(description="legal aid"))
    where, _, order = sql.partition("ORDER BY")
    assert "@@ plainto_tsquery(" in where
    assert re.search(r"^ts_rank\(.*\) DESC, resource\.created_at DESC", order.strip())


def test_description_only_ranks_next_to_other_clauses():
    sql, _, _ = compile_full_text(SearchCriteria(category=["Legal"], description="legal aid"))
    assert "@@" not in sql
    assert re.search(r"ORDER BY ts_rank\(.*\) DESC, resource\.created_at DESC", sql)


def test_without_description_newest_first():
    sql, _, _ = compile_full_text(SearchCriteria(category=["Legal"]))
    assert "ts_rank" not in sql
    assert re.search(r"ORDER BY resource\.created_at DESC LIMIT ", sql)


def test_page_past_the_end_skips_the_page_query():
    session = RecordingSession(total=3)
    resources, total = _full_text_query(
        session, SearchCriteria(page=10**19, limit=20), paginate=True
    )
    assert (resources, total) == ([], 3)
    assert len(session.statements) == 1


@pytest.mark.parametrize(
    "wanted, expected",
    [
        (["Health"], ["Dental Clinic"]),
        (["health", "Mental Health"], ["Dental Clinic", "Counselling Center"]),
        (["Wellness"], []),
    ],
)
def test_filtered_path_compares_whole_entries(session, make_resource, wanted, expected):
    make_resource("Dental Clinic", category=["Mental Wellness", "Health"])
    make_resource("Counselling Center", category=["Mental Health"])

    resources, _ = _filtered_query(session, SearchCriteria(category=wanted), paginate=True)
    assert [resource.name for resource in resources] == expected
