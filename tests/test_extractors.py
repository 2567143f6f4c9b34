"""Tests for the DDL extraction rules."""
from chlens.db_scanner.extractors import (
    extract_dependencies,
    extract_dictionary_refs,
    extract_distributed_table,
    extract_join_tables,
    extract_source_tables,
    extract_target_table,
    unquote,
)
from chlens.db_scanner.models import Dependency, EdgeType, TableRow
from chlens.db_scanner.sanitizer import sanitize


STORED_TO_VIEW = (
    "CREATE MATERIALIZED VIEW test_db.mv_hourly TO test_db.hourly_stats\n"
    "(\n"
    "    `hour` DateTime,\n"
    "    `cnt` UInt64\n"
    ")\n"
    "AS SELECT\n"
    "    toStartOfHour(ts) AS hour,\n"
    "    count() AS cnt\n"
    "FROM test_db.events\n"
    "GROUP BY hour"
)

STORED_VIEW = (
    "CREATE VIEW test_db.active_users\n"
    "(\n"
    "    `id` UInt64,\n"
    "    `name` String\n"
    ") AS\n"
    "SELECT id, name\n"
    "FROM test_db.users\n"
    "WHERE active = 1"
)


def deps(*items):
    return [Dependency(db, table, edge_type) for db, table, edge_type in items]


class TestTargetTable:
    def test_qualified_target(self):
        sql = "CREATE MATERIALIZED VIEW db.mv TO db.target AS SELECT * FROM db.src"
        assert extract_target_table(sql, "db") == deps(("db", "target", EdgeType.TARGET))

    def test_backticked_target(self):
        sql = "CREATE MATERIALIZED VIEW `db`.`mv` TO `other`.`tgt` AS SELECT 1"
        assert extract_target_table(sql, "db") == deps(("other", "tgt", EdgeType.TARGET))

    def test_default_database(self):
        sql = "CREATE MATERIALIZED VIEW mv TO target AS SELECT 1"
        assert extract_target_table(sql, "db") == deps(("db", "target", EdgeType.TARGET))

    def test_function_starting_with_to_is_not_a_target(self):
        sql = ("CREATE MATERIALIZED VIEW db.mv ENGINE = MergeTree ORDER BY h "
               "AS SELECT toStartOfHour(ts) AS h FROM db.events")
        assert extract_target_table(sql, "db") == []

    def test_ttl_move_to_disk_is_not_a_target(self):
        sql = sanitize("CREATE MATERIALIZED VIEW db.mv ENGINE = MergeTree "
                       "TTL d + INTERVAL 1 DAY TO DISK 'cold' AS SELECT d FROM db.src")
        assert extract_target_table(sql, "db") == []

    def test_target_followed_by_column_list(self):
        """The catalog stores TO views with the target's column list."""
        sql = sanitize(STORED_TO_VIEW)
        assert extract_target_table(sql, "test_db") == deps(
            ("test_db", "hourly_stats", EdgeType.TARGET))

    def test_backticked_target_followed_by_column_list(self):
        sql = ("CREATE MATERIALIZED VIEW `db`.`mv` TO `db`.`dst` (`a` UInt64, `b` String) "
               "AS SELECT a, b FROM `db`.`src`")
        assert extract_target_table(sql, "db") == deps(("db", "dst", EdgeType.TARGET))

    def test_first_match_only(self):
        sql = "CREATE MATERIALIZED VIEW db.mv TO db.first AS SELECT 1 TO db.second"
        result = extract_target_table(sql, "db")
        assert [d.table for d in result] == ["first"]


class TestJoinTables:
    def test_multiple_join_kinds(self):
        sql = ("SELECT * FROM db.a INNER JOIN db.b ON a.id = b.id "
               "LEFT JOIN db.c ON b.id = c.id")
        assert extract_join_tables(sql, "db") == deps(
            ("db", "b", EdgeType.JOIN),
            ("db", "c", EdgeType.JOIN),
        )

    def test_same_table_joined_twice(self):
        sql = ("SELECT * FROM db.a LEFT JOIN db.b AS b1 ON a.x = b1.x "
               "LEFT JOIN db.b AS b2 ON a.y = b2.y")
        assert extract_join_tables(sql, "db") == deps(("db", "b", EdgeType.JOIN))

    def test_stacked_modifiers_and_default_database(self):
        sql = "SELECT * FROM events GLOBAL ANY LEFT JOIN users USING id"
        assert extract_join_tables(sql, "analytics") == deps(
            ("analytics", "users", EdgeType.JOIN))

    def test_array_join_is_not_a_table(self):
        sql = "SELECT tag FROM db.t ARRAY JOIN tags AS tag"
        assert extract_join_tables(sql, "db") == []

    def test_subquery_and_table_function_skipped(self):
        sql = ("SELECT * FROM db.a JOIN (SELECT id FROM db.b) AS s ON a.id = s.id "
               "JOIN numbers(10) AS n ON a.id = n.number")
        assert extract_join_tables(sql, "db") == []

    def test_join_in_comment_ignored_after_sanitize(self):
        sql = sanitize("SELECT * FROM db.real_table -- JOIN fake_table ON ...")
        assert extract_join_tables(sql, "db") == []
        sql = sanitize("SELECT * FROM db.real_table /* JOIN fake_table ON id = id */")
        assert extract_join_tables(sql, "db") == []


class TestSourceTables:
    def test_from_with_alias(self):
        sql = "CREATE VIEW test_db.events_view AS SELECT e.* FROM test_db.events AS e"
        assert extract_source_tables(sql, "test_db") == deps(
            ("test_db", "events", EdgeType.SOURCE))

    def test_subquery_descends_to_inner_table(self):
        sql = "SELECT * FROM (SELECT * FROM db.inner_t)"
        assert extract_source_tables(sql, "db") == deps(("db", "inner_t", EdgeType.SOURCE))

    def test_table_function_skipped(self):
        assert extract_source_tables("SELECT * FROM numbers(10)", "db") == []

    def test_view_with_column_list(self):
        assert extract_source_tables(sanitize(STORED_VIEW), "test_db") == deps(
            ("test_db", "users", EdgeType.SOURCE))

    def test_from_inside_function_call_is_not_a_source(self):
        sql = sanitize(
            "CREATE VIEW db.v AS SELECT EXTRACT(YEAR FROM ts) AS y, "
            "trim(BOTH ' ' FROM users) AS n FROM db.events"
        )
        assert extract_source_tables(sql, "db") == deps(("db", "events", EdgeType.SOURCE))

    def test_function_call_inside_subquery(self):
        sql = "SELECT * FROM (SELECT EXTRACT(DAY FROM ts) AS d FROM db.inner_t)"
        assert extract_source_tables(sql, "db") == deps(("db", "inner_t", EdgeType.SOURCE))


class TestDistributedTable:
    def test_quoted_arguments(self):
        sql = ("CREATE TABLE test_db.events_distributed (id UInt64) "
               "ENGINE = Distributed('cluster', 'test_db', 'events_local', rand())")
        assert extract_distributed_table(sql, "test_db") == deps(
            ("test_db", "events_local", EdgeType.DISTRIBUTED))

    def test_current_database(self):
        sql = "ENGINE = Distributed('{cluster}', currentDatabase(), 'events_local')"
        assert extract_distributed_table(sql, "analytics") == deps(
            ("analytics", "events_local", EdgeType.DISTRIBUTED))

    def test_bare_identifiers(self):
        sql = "ENGINE = Distributed(my_cluster, db2, local_t, rand())"
        assert extract_distributed_table(sql, "db") == deps(
            ("db2", "local_t", EdgeType.DISTRIBUTED))

    def test_not_distributed(self):
        assert extract_distributed_table("ENGINE = MergeTree ORDER BY id", "db") == []


class TestDictionaryRefs:
    def test_default_database(self):
        sql = "SELECT dictGetString('my_dict', 'name', id) FROM t"
        assert extract_dictionary_refs(sql, "test_db") == deps(
            ("test_db", "my_dict", EdgeType.DICTIONARY))

    def test_qualified_name_and_variant(self):
        sql = "SELECT dictGetOrDefault('dicts.geo', 'country', ip, 'n/a') FROM t"
        assert extract_dictionary_refs(sql, "db") == deps(
            ("dicts", "geo", EdgeType.DICTIONARY))

    def test_deduplicated(self):
        sql = "SELECT dictHas('d1', k), dictGet('d1', 'x', k), dictGetHierarchy('d2', k)"
        assert extract_dictionary_refs(sql, "db") == deps(
            ("db", "d1", EdgeType.DICTIONARY),
            ("db", "d2", EdgeType.DICTIONARY),
        )

    def test_sanitized_text_loses_dictionary_names(self):
        sql = "SELECT dictGetString('my_dict', 'name', id) FROM t"
        assert extract_dictionary_refs(sanitize(sql), "db") == []


def test_unquote():
    assert unquote("`my``table`") == "my`table"
    assert unquote("'db'") == "db"
    assert unquote("plain") == "plain"
    assert unquote(None) == ""


def test_extract_dependencies_materialized_view():
    """Every rule contributes its own typed dependency."""
    row = TableRow(
        database="db",
        name="mv",
        engine="MaterializedView",
        create_table_query=(
            "CREATE MATERIALIZED VIEW db.mv TO db.target AS "
            "SELECT *, dictGet('db.d', 'x', id) AS x FROM db.src "
            "LEFT JOIN db.users ON src.uid = users.id"
        ),
    )
    assert extract_dependencies(row) == deps(
        ("db", "target", EdgeType.TARGET),
        ("db", "src", EdgeType.SOURCE),
        ("db", "users", EdgeType.JOIN),
        ("db", "d", EdgeType.DICTIONARY),
    )


def test_extract_dependencies_stored_materialized_view():
    row = TableRow(database="test_db", name="mv_hourly", engine="MaterializedView",
                   create_table_query=STORED_TO_VIEW)
    assert extract_dependencies(row) == deps(
        ("test_db", "hourly_stats", EdgeType.TARGET),
        ("test_db", "events", EdgeType.SOURCE),
    )


def test_extract_dependencies_plain_table():
    row = TableRow(database="db", name="t", engine="MergeTree",
                   create_table_query="CREATE TABLE db.t (id UInt64) ENGINE = MergeTree ORDER BY id")
    assert extract_dependencies(row) == []


def test_extract_dependencies_empty_or_garbled_ddl():
    assert extract_dependencies(TableRow(database="db", name="t", engine="View")) == []
    garbled = TableRow(database="db", name="t", engine="Distributed",
                       create_table_query="ENGINE = Distributed('c', /* JOIN")
    assert extract_dependencies(garbled) == []
