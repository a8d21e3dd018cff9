from engvantage.schemas import (
    QUIZ_LIST_SCHEMA,
    WORD_FIELDS,
    WORD_LIST_SCHEMA,
    WRAPPED_ITEMS_KEY,
    to_gemini_schema,
    to_strict_json_schema,
)


def test_strict_schema_wraps_array_root() -> None:
    strict = to_strict_json_schema(WORD_LIST_SCHEMA)
    assert strict["type"] == "object"
    assert strict["required"] == [WRAPPED_ITEMS_KEY]
    assert strict["additionalProperties"] is False

    item = strict["properties"][WRAPPED_ITEMS_KEY]["items"]
    assert item["required"] == list(WORD_FIELDS)
    assert item["additionalProperties"] is False


def test_strict_schema_leaves_source_untouched() -> None:
    to_strict_json_schema(QUIZ_LIST_SCHEMA)
    assert "additionalProperties" not in QUIZ_LIST_SCHEMA["items"]


def test_gemini_schema_uses_upper_case_types() -> None:
    gemini = to_gemini_schema(QUIZ_LIST_SCHEMA)
    assert gemini["type"] == "ARRAY"
    properties = gemini["items"]["properties"]
    assert properties["options"] == {"type": "ARRAY", "items": {"type": "STRING"}}
    assert properties["type"]["enum"] == ["meaning", "completion", "spelling"]
    assert gemini["items"]["required"] == QUIZ_LIST_SCHEMA["items"]["required"]
