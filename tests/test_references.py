"""Tests for quarry.canvas.references — {{id}} markers."""

from quarry.canvas.references import parse_references, relation_name


class TestRelationName:
    def test_hyphens_become_underscores(self) -> None:
        assert relation_name("sql-1") == "sql_1"

    def test_plain_id_unchanged(self) -> None:
        assert relation_name("orders") == "orders"


class TestParseReferences:
    """parse_references — extraction order and rewriting."""

    def test_single_reference(self) -> None:
        parsed = parse_references("SELECT * FROM {{sql-1}}")
        assert parsed.references == ("sql-1",)
        assert parsed.sql == "SELECT * FROM sql_1"

    def test_no_markers(self) -> None:
        parsed = parse_references("SELECT 1")
        assert parsed.references == ()
        assert parsed.sql == "SELECT 1"

    def test_first_occurrence_order_without_duplicates(self) -> None:
        parsed = parse_references(
            "SELECT * FROM {{sql-2}} JOIN {{sql-1}} USING (id) JOIN {{sql-2}} b USING (id)"
        )
        assert parsed.references == ("sql-2", "sql-1")
        assert parsed.sql == (
            "SELECT * FROM sql_2 JOIN sql_1 USING (id) JOIN sql_2 b USING (id)"
        )

    def test_whitespace_inside_braces(self) -> None:
        parsed = parse_references("SELECT * FROM {{  sql-1 }}")
        assert parsed.references == ("sql-1",)
        assert parsed.sql == "SELECT * FROM sql_1"

    def test_unterminated_marker_left_alone(self) -> None:
        parsed = parse_references("SELECT * FROM {{sql-1")
        assert parsed.references == ()
        assert parsed.sql == "SELECT * FROM {{sql-1"

    def test_invalid_characters_not_a_marker(self) -> None:
        parsed = parse_references("SELECT '{{not a ref}}'")
        assert parsed.references == ()
        assert parsed.sql == "SELECT '{{not a ref}}'"

    def test_empty_braces_ignored(self) -> None:
        assert parse_references("SELECT {{}}").references == ()

    def test_underscores_and_digits(self) -> None:
        parsed = parse_references("SELECT * FROM {{raw_orders_2024}}")
        assert parsed.references == ("raw_orders_2024",)
        assert parsed.sql == "SELECT * FROM raw_orders_2024"
