"""
Tests for the ingredient line parser and unit normalization.
"""

import pytest

from recipe_ocr.services.ingredient_parser import normalize_unit, parse_ingredient_line, strip_bullet


class TestParseIngredientLine:

    def test_quantity_unit_item(self):
        parsed = parse_ingredient_line("2 Esslöffel Zucker")
        assert parsed.quantity == "2"
        assert parsed.unit == "Esslöffel"
        assert parsed.item == "Zucker"
        assert parsed.notes is None

    def test_unit_is_normalized(self):
        assert parse_ingredient_line("2 Esslöffel Zucker").canonical_unit == "tbsp"
        assert parse_ingredient_line("• 250g Mehl").canonical_unit == "g"
        assert parse_ingredient_line("2 Pakete Mascarpone à 250g").canonical_unit == "package"

    def test_glued_metric_unit(self):
        parsed = parse_ingredient_line("• 250g Mehl")
        assert (parsed.quantity, parsed.unit, parsed.item) == ("250", "g", "Mehl")

    def test_unknown_unit_stays_in_item(self):
        parsed = parse_ingredient_line("4 Eier")
        assert parsed.quantity == "4"
        assert parsed.unit is None
        assert parsed.item == "Eier"
        assert parsed.canonical_unit is None

    def test_package_unit_keeps_remainder(self):
        parsed = parse_ingredient_line("2 Pakete Mascarpone à 250g")
        assert (parsed.quantity, parsed.unit, parsed.item) == ("2", "Pakete", "Mascarpone à 250g")

    def test_notes_in_parentheses(self):
        parsed = parse_ingredient_line("Kakaopulver (herb, nicht süß)")
        assert parsed.quantity is None
        assert parsed.item == "Kakaopulver"
        assert parsed.notes == "herb, nicht süß"

    @pytest.mark.parametrize("line, quantity", [
        ("1/2 TL Salz", "1/2"),
        ("½ Tasse Milch", "½"),
        ("1½ Tassen Mehl", "1½"),
        ("2-3 Eier", "2-3"),
        ("0,5 l Milch", "0,5"),
    ])
    def test_quantity_forms(self, line, quantity):
        assert parse_ingredient_line(line).quantity == quantity

    def test_abbreviated_unit(self):
        parsed = parse_ingredient_line("1/2 TL Salz")
        assert parsed.unit == "TL"
        assert parsed.item == "Salz"

    def test_unit_without_item_is_the_item(self):
        parsed = parse_ingredient_line("3 Tassen")
        assert parsed.unit is None
        assert parsed.item == "Tassen"

    @pytest.mark.parametrize("line", ["", "   ", "•", "- ", "(nur Deko)"])
    def test_nothing_left_returns_none(self, line):
        assert parse_ingredient_line(line) is None

    def test_display_reassembles_line(self):
        parsed = parse_ingredient_line("• 3 Esslöffel Zucker (fein)")
        assert parsed.display == "3 Esslöffel Zucker (fein)"


class TestNormalizeUnit:

    @pytest.mark.parametrize("raw, expected", [
        ("Esslöffel", "tbsp"),
        ("EL", "tbsp"),
        ("TL", "tsp"),
        ("Tassen", "cup"),
        ("cucharadas", "tbsp"),
        ("Gramm", "g"),
        ("g.", "g"),
    ])
    def test_known_units(self, raw, expected):
        assert normalize_unit(raw) == expected

    def test_unknown_unit_is_lowercased(self):
        assert normalize_unit("Handvoll") == "handvoll"

    def test_empty(self):
        assert normalize_unit(None) is None
        assert normalize_unit("  ") is None


class TestStripBullet:

    @pytest.mark.parametrize("line", ["• Kaffee", "- Kaffee", "* Kaffee", "  ● Kaffee"])
    def test_bullets(self, line):
        assert strip_bullet(line) == "Kaffee"
