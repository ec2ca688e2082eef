import pytest

from helpers import make_index
from searchbridge.exceptions import ConfigError
from searchbridge.items import Field, FieldType, Item
from searchbridge.processors import RunContext, Tokenizer
from searchbridge.processors.tokenizer import translate_pattern


@pytest.fixture
def ctx() -> RunContext:
    return RunContext(
        make_index(
            "i1",
            fields={
                "body": Field(name="body", type=FieldType.TEXT),
                "type": Field(name="type", type=FieldType.STRING),
                "count": Field(name="count", type=FieldType.INTEGER),
            },
        )
    )


def test_scalar_value_collapses_whitespace(ctx: RunContext) -> None:
    tokenizer = Tokenizer({"spaces": "[^[:alnum:]]", "ignorable": "[']"})
    assert tokenizer.process("foo-bar  baz", ctx) == "foo bar baz"


def test_fulltext_field_is_split_into_tokens(ctx: RunContext) -> None:
    tokenizer = Tokenizer({"spaces": "[^[:alnum:]]", "ignorable": "[']"})
    items = {"1": Item("1", {"body": "foo-bar  baz"})}

    tokenizer.preprocess_index_items(items, ctx)

    assert items["1"].fields["body"] == ["foo", "bar", "baz"]


def test_selected_string_field_stays_scalar(ctx: RunContext) -> None:
    tokenizer = Tokenizer({"fields": ["type"]})
    items = {"1": Item("1", {"type": "foo-bar  baz", "body": "left alone"})}

    tokenizer.preprocess_index_items(items, ctx)

    assert items["1"].fields["type"] == "foo bar baz"
    assert items["1"].fields["body"] == "left alone"


def test_ignorable_characters_are_removed(ctx: RunContext) -> None:
    tokenizer = Tokenizer()
    assert tokenizer.process("don't stop", ctx) == "dont stop"
    assert tokenizer.process_field_value("don't", ctx) == "dont"


def test_single_token_stays_scalar(ctx: RunContext) -> None:
    tokenizer = Tokenizer()
    items = {"1": Item("1", {"body": "  hello!  "})}

    tokenizer.preprocess_index_items(items, ctx)

    assert items["1"].fields["body"] == "hello"


def test_list_values_are_flattened(ctx: RunContext) -> None:
    tokenizer = Tokenizer()
    items = {"1": Item("1", {"body": ["one two", "three"]})}

    tokenizer.preprocess_index_items(items, ctx)

    assert items["1"].fields["body"] == ["one", "two", "three"]


def test_non_string_values_are_untouched(ctx: RunContext) -> None:
    tokenizer = Tokenizer()
    assert tokenizer.process(42, ctx) == 42
    assert tokenizer.process(None, ctx) is None
    assert tokenizer.process_field_value(True, ctx) is True


def test_empty_pattern_disables_step(ctx: RunContext) -> None:
    tokenizer = Tokenizer({"spaces": "", "ignorable": ""})
    assert tokenizer.process("a-b  c", ctx) == "a-b  c"


def test_invalid_pattern_is_rejected() -> None:
    with pytest.raises(ConfigError):
        Tokenizer({"spaces": "[unclosed"})
    with pytest.raises(ConfigError):
        Tokenizer({"ignorable": "(?P<"})


def test_unknown_posix_class_is_rejected() -> None:
    with pytest.raises(ConfigError):
        Tokenizer({"spaces": "[^[:nonsense:]]"})


def test_translate_pattern() -> None:
    assert translate_pattern("[^[:alnum:]]") == r"(?:(?![^\W_])[\s\S])"
    assert translate_pattern("[[:digit:][:upper:]]") == r"(?:\d|[A-Z])"
    assert translate_pattern("[-[:space:]]") == r"(?:\s|[-])"
    assert translate_pattern("[']") == "[']"


def test_default_classes_keep_non_ascii_letters(ctx: RunContext) -> None:
    tokenizer = Tokenizer()
    items = {"1": Item("1", {"body": "Café-crème naïve_test 42"})}

    tokenizer.preprocess_index_items(items, ctx)

    assert items["1"].fields["body"] == ["Café", "crème", "naïve", "test", "42"]
    assert tokenizer.process("l'été, déjà", ctx) == "lété déjà"
