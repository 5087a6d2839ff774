import pytest

import database
from conftest import NOW, make_coverage, make_template
from services.compliance import calculate_compliance
from services.db_ops import hash_inputs, list_compliance_checks, save_compliance_check


@pytest.fixture
def sqlite_db(tmp_path, monkeypatch):
    monkeypatch.setattr(database, "db_engine", None)
    monkeypatch.setattr(database, "SessionLocal", None)
    assert database.init_db(f"sqlite:///{tmp_path / 'coi.db'}")
    yield
    database.db_engine.dispose()


@pytest.fixture
def result():
    template = make_template([{"coverage_type": "general_liability", "minimum_limit": 1000000}])
    return calculate_compliance([make_coverage("general_liability", 500000)], [], template, [], now=NOW)


def test_hash_inputs_ignores_key_order():
    assert hash_inputs({"a": 1, "b": [1, 2]}) == hash_inputs({"b": [1, 2], "a": 1})
    assert hash_inputs({"a": 1}) != hash_inputs({"a": 2})


def test_save_without_database(result, monkeypatch):
    monkeypatch.setattr(database, "SessionLocal", None)
    assert save_compliance_check("cert-1", result) is None
    assert list_compliance_checks("cert-1") == []


def test_save_and_list(sqlite_db, result):
    check_id = save_compliance_check("cert-1", result, input_hash="abc")
    assert check_id is not None

    checks = list_compliance_checks("cert-1")
    assert len(checks) == 1
    assert checks[0]["status"] == "non-compliant"
    assert checks[0]["issue_count"] == 1
    assert list_compliance_checks("cert-2") == []


def test_identical_inputs_saved_once(sqlite_db, result):
    first = save_compliance_check("cert-1", result, input_hash="abc")
    second = save_compliance_check("cert-1", result, input_hash="abc")
    third = save_compliance_check("cert-1", result, input_hash="def")

    assert first == second
    assert third != first
    assert len(list_compliance_checks("cert-1")) == 2
