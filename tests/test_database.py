import logging

from sqlalchemy import create_engine, text

from barbersmart.database import describe_query, install_query_logging


def test_describe_query_names_table_and_unit():
    statement = "SELECT appointments.id FROM appointments WHERE appointments.barbershop_id = %(barbershop_id_1)s"
    assert describe_query(statement, {"barbershop_id_1": "unit-1"}) == "appointments unit=unit-1"
    assert describe_query('UPDATE "clients" SET name=?', ("Ana",)) == "clients"
    assert describe_query("INSERT INTO transactions (id) VALUES (?)", None) == "transactions"
    assert describe_query("PRAGMA foreign_keys", None) == "?"


def test_slow_statements_are_logged(caplog):
    engine = create_engine("sqlite://")
    install_query_logging(engine, threshold=-1.0)

    with caplog.at_level(logging.WARNING, logger="barbersmart.database"):
        with engine.connect() as conn:
            conn.execute(text("CREATE TABLE staff (id INTEGER)"))
            conn.execute(text("SELECT id FROM staff"))

    messages = [r.getMessage() for r in caplog.records if "Slow query" in r.getMessage()]
    assert any("on staff: SELECT id FROM staff" in m for m in messages)


def test_fast_statements_are_not_logged(caplog):
    engine = create_engine("sqlite://")
    install_query_logging(engine, threshold=60.0)

    with caplog.at_level(logging.WARNING, logger="barbersmart.database"):
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))

    assert not [r for r in caplog.records if "Slow query" in r.getMessage()]
