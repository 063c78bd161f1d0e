"""
Tests for the line-oriented section parser.
"""

from recipe_ocr.constants import DEFAULT_TITLE, MAX_INGREDIENTS
from recipe_ocr.models.recipe import ParsingMethod, Section
from recipe_ocr.services.section_parser import ParserState, parse_sections, to_structured_recipe


SIMPLE_PAGE = (
    "Zutaten\n"
    "• 2 Pakete Mascarpone à 250g\n"
    "Schritt 1\n"
    "Ein paar Tassen starken Kaffee aufbrühen und erkalten lassen."
)


class TestParseSections:

    def test_ingredients_then_steps(self):
        parse = parse_sections(SIMPLE_PAGE)

        assert parse.ingredients == ("2 Pakete Mascarpone à 250g",)
        assert parse.steps == ("Ein paar Tassen starken Kaffee aufbrühen und erkalten lassen.",)
        assert parse.sections_visited == (Section.NONE, Section.INGREDIENTS, Section.STEPS)
        assert parse.title is None

    def test_full_page(self, clean_text):
        parse = parse_sections(clean_text)

        assert len(parse.ingredients) == 7
        assert parse.ingredients[0] == "2 Pakete Mascarpone à 250g"
        assert parse.ingredients[-1] == "Kakaopulver (herb, nicht süß)"
        assert len(parse.steps) == 5
        assert parse.steps[1] == "Die Löffelbisquits nebeneinander in die Form legen."
        assert parse.servings == 1

    def test_step_spanning_several_lines(self):
        text = "Schritt 1\nTeig kneten und\nruhen lassen.\nSchritt 2\nBacken bis goldbraun."
        parse = parse_sections(text)

        assert parse.steps == ("Teig kneten und ruhen lassen.", "Backen bis goldbraun.")
        assert parse.title is None

    def test_text_on_the_marker_line(self):
        parse = parse_sections("Schritt 1: Ofen vorheizen auf 180 Grad")
        assert parse.steps == ("Ofen vorheizen auf 180 Grad",)

    def test_english_and_spanish_markers(self):
        parse = parse_sections("Ingredients\n- 2 Eier\nStep 1\nMix everything well.\nPaso 2\nHornear media hora.")

        assert parse.ingredients == ("2 Eier",)
        assert parse.steps == ("Mix everything well.", "Hornear media hora.")

    def test_early_dish_line_is_the_title(self):
        parse = parse_sections("Tiramisu a la Herzchen\nZutaten\n• 4 Eier")

        assert parse.title == "Tiramisu a la Herzchen"
        assert parse.ingredients == ("4 Eier",)

    def test_ui_noise_is_skipped(self):
        parse = parse_sections("Zutaten\n• 4 Eier\nZur Einkaufsliste hinzufügen\nTeilen")
        assert parse.ingredients == ("4 Eier",)

    def test_zero_servings(self):
        assert parse_sections("0 Portionen\nZutaten\n• 4 Eier").servings is None

    def test_overlong_servings_number_is_ignored(self):
        parse = parse_sections("Zutaten\n• 4 Eier\n" + "9" * 5000 + " Portionen")

        assert parse.servings is None
        assert parse.ingredients == ("4 Eier",)

    def test_first_short_line_becomes_title(self):
        text = "Pesto Genovese\nZutaten\n• Olivenöl\n• Basilikum\nSchritt 1\nAlles mischen."
        parse = parse_sections(text)

        assert parse.title == "Pesto Genovese"
        assert parse.ingredients == ("Olivenöl", "Basilikum")
        assert parse.steps == ("Alles mischen.",)

    def test_headerless_list_promotes_first_ingredient(self):
        parse = parse_sections("• 2 Eier\n• 100 g Zucker\n• Mehl")

        assert parse.title == "2 Eier"
        assert parse.ingredients == ("100 g Zucker",)

    def test_loose_bullets_read_as_o(self):
        parse = parse_sections("(O) Kaffee\nOO 4 Eier\nO 2 Pakete Mascarpone")

        # no header and no plain line, so the first ingredient is promoted
        assert parse.title == "Kaffee"
        assert parse.ingredients == ("4 Eier", "2 Pakete Mascarpone")

    def test_loose_step_lines(self):
        parse = parse_sections("1. Ein paar Tassen starken Kaffee aufbrühen")
        assert parse.steps == ("Ein paar Tassen starken Kaffee aufbrühen",)
        assert parse.title is None

    def test_tiny_steps_are_dropped(self):
        parse = parse_sections("Schritt 1\nRühr\nSchritt 2\nAlles gut verrühren.")
        assert parse.steps == ("Alles gut verrühren.",)

    def test_empty_text(self):
        parse = parse_sections("")

        assert parse.ingredients == ()
        assert parse.steps == ()
        assert parse.title is None
        assert parse.sections_visited == (Section.NONE,)


class TestParserState:

    def test_enter_records_each_transition_once(self):
        state = ParserState().enter(Section.INGREDIENTS).enter(Section.INGREDIENTS).enter(Section.STEPS)
        assert state.sections_visited == (Section.NONE, Section.INGREDIENTS, Section.STEPS)

    def test_flush_moves_buffer_to_steps(self):
        state = ParserState(buffer="Alles verrühren").flush()

        assert state.steps == ("Alles verrühren",)
        assert state.buffer == ""

    def test_flush_of_empty_buffer_is_a_no_op(self):
        state = ParserState()
        assert state.flush() is state


class TestToStructuredRecipe:

    def test_conversion(self):
        recipe = to_structured_recipe(parse_sections(SIMPLE_PAGE))

        assert recipe.method == ParsingMethod.SECTION_BASED
        assert recipe.title == DEFAULT_TITLE
        assert recipe.ingredients[0].quantity == "2"
        assert recipe.ingredients[0].unit == "Pakete"
        assert recipe.ingredients[0].item == "Mascarpone à 250g"
        assert recipe.confidence == 60.0

    def test_ingredient_cap(self):
        lines = "\n".join(f"• {i} g Mehl" for i in range(1, 21))
        recipe = to_structured_recipe(parse_sections(f"Zutaten\n{lines}"))

        assert len(recipe.ingredients) == MAX_INGREDIENTS
