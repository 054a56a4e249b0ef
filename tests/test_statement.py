import sqlite3

import pytest

from djapi.db.statement import PreparedStatement, translate_placeholders


@pytest.mark.parametrize(
    "paramstyle, expected",
    [
        ("qmark", "SELECT * FROM t WHERE a = ? AND b = ?"),
        ("format", "SELECT * FROM t WHERE a = %s AND b = %s"),
        ("pyformat", "SELECT * FROM t WHERE a = %s AND b = %s"),
        ("numeric", "SELECT * FROM t WHERE a = :1 AND b = :2"),
        ("named", "SELECT * FROM t WHERE a = :p1 AND b = :p2"),
    ],
)
def test_translate_placeholders(paramstyle, expected):
    sql, count = translate_placeholders("SELECT * FROM t WHERE a = ? AND b = ?", paramstyle)

    assert sql == expected
    assert count == 2


def test_placeholders_in_literals_and_comments_are_kept():
    sql, count = translate_placeholders(
        "SELECT '?', \"col?\" FROM t -- why?\nWHERE x = ? AND y = 'it''s ?'",
        "format",
    )

    assert count == 1
    assert sql == "SELECT '?', \"col?\" FROM t -- why?\nWHERE x = %s AND y = 'it''s ?'"


def test_percent_is_escaped_only_when_there_are_parameters():
    assert translate_placeholders("SELECT 'a%'", "pyformat") == ("SELECT 'a%'", 0)
    assert translate_placeholders("SELECT * FROM t WHERE a LIKE 'x%' AND b = ?", "pyformat") == (
        "SELECT * FROM t WHERE a LIKE 'x%%' AND b = %s",
        1,
    )


def test_unknown_paramstyle_is_rejected():
    with pytest.raises(ValueError):
        translate_placeholders("SELECT 1", "dollar")


@pytest.fixture()
def connection():
    conn = sqlite3.connect(":memory:")
    conn.execute("CREATE TABLE t (id INTEGER PRIMARY KEY, name TEXT)")
    yield conn
    conn.close()


def test_bind_position_out_of_range(connection):
    stmt = PreparedStatement(connection, "SELECT * FROM t WHERE id = ?")

    with pytest.raises(IndexError):
        stmt.bind(0, 1)
    with pytest.raises(IndexError):
        stmt.bind(2, 1)


def test_unbound_parameter_fails_on_execute(connection):
    stmt = PreparedStatement(connection, "INSERT INTO t (id, name) VALUES (?, ?)")
    stmt.bind(1, 7)

    with pytest.raises(ValueError, match="parameter 2"):
        stmt.execute_update()


def test_named_parameters_are_passed_as_a_mapping(connection):
    stmt = PreparedStatement(connection, "INSERT INTO t (id, name) VALUES (?, ?)", paramstyle="named")
    stmt.bind(1, 3)
    stmt.bind(2, "three")

    assert stmt.parameters() == {"p1": 3, "p2": "three"}
    assert stmt.execute_update() == 1


def test_query_and_reexecution_invalidate_the_previous_cursor(connection):
    connection.execute("INSERT INTO t VALUES (1, 'one')")
    stmt = PreparedStatement(connection, "SELECT name FROM t")

    first = stmt.execute_query()
    second = stmt.execute_query()

    assert first.closed
    assert second.next()
    assert second.value("NAME") == "one"


def test_update_statement_has_no_result_set(connection):
    stmt = PreparedStatement(connection, "DELETE FROM t")

    with pytest.raises(ValueError, match="result set"):
        stmt.execute_query()


def test_generated_keys_from_lastrowid(connection):
    stmt = PreparedStatement(connection, "INSERT INTO t (name) VALUES (?)", return_generated_keys=True)
    stmt.bind(1, "x")
    stmt.execute_update()

    keys = stmt.generated_keys()

    assert keys.next()
    assert keys.value("generated_key") == 1


def test_generated_keys_need_the_mode(connection):
    stmt = PreparedStatement(connection, "INSERT INTO t (name) VALUES ('x')")
    stmt.execute_update()

    with pytest.raises(ValueError):
        stmt.generated_keys()


def test_closed_statement_refuses_work(connection):
    stmt = PreparedStatement(connection, "SELECT 1")
    stmt.close()
    stmt.close()

    with pytest.raises(ValueError, match="closed"):
        stmt.execute_query()


def test_no_connection():
    with pytest.raises(ValueError):
        PreparedStatement(None, "SELECT 1")


def test_placeholders_in_block_comments_are_kept():
    sql, count = translate_placeholders(
        "SELECT /* why? */ * FROM t /**/ WHERE a = ? /*/ still? */ AND b = ?", "format"
    )

    assert count == 2
    assert sql == "SELECT /* why? */ * FROM t /**/ WHERE a = %s /*/ still? */ AND b = %s"


def test_statement_with_block_comment_executes(connection):
    connection.execute("INSERT INTO t VALUES (1, 'one')")
    stmt = PreparedStatement(connection, "SELECT name /* by id? */ FROM t WHERE id = ?")
    stmt.bind(1, 1)

    cursor = stmt.execute_query()

    assert stmt.parameter_count == 1
    assert cursor.next()
    assert cursor.value("name") == "one"
