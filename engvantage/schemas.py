"""
Structured JSON schemas for generated content.

The model is asked to answer with JSON that matches these schemas; the
client knows how to turn each record into a Word or QuizQuestion. Schemas are
written once in JSON Schema form and converted for each transport:

- direct (OpenAI-compatible): strict json_schema response format, which needs
  an object at the root, so arrays are wrapped as {"items": [...]}
- relay (Gemini request shape): responseSchema with upper-case type names
"""

import copy
from typing import Any, Dict

WORD_FIELDS = (
    "word",
    "phonetic",
    "definition",
    "translation",
    "exampleSentence",
    "exampleTranslation",
)

WORD_LIST_SCHEMA: Dict[str, Any] = {
    "type": "array",
    "items": {
        "type": "object",
        "properties": {name: {"type": "string"} for name in WORD_FIELDS},
        "required": list(WORD_FIELDS),
    },
}

QUIZ_REQUIRED_FIELDS = ("question", "options", "correctAnswer")
QUIZ_OPTION_COUNT = 4

QUIZ_LIST_SCHEMA: Dict[str, Any] = {
    "type": "array",
    "items": {
        "type": "object",
        "properties": {
            "question": {"type": "string"},
            "options": {"type": "array", "items": {"type": "string"}},
            "correctAnswer": {"type": "string"},
            "wordId": {
                "type": "string",
                "description": "The actual word this question is testing",
            },
            "type": {"type": "string", "enum": ["meaning", "completion", "spelling"]},
        },
        "required": ["question", "options", "correctAnswer", "wordId", "type"],
    },
}

# Key used when an array schema has to be wrapped in an object.
WRAPPED_ITEMS_KEY = "items"


def to_strict_json_schema(schema: Dict[str, Any]) -> Dict[str, Any]:
    """
    Convert a schema for OpenAI strict structured outputs.

    Strict mode wants an object root, every property listed as required and
    additionalProperties disabled on every object.
    """
    def _strict(node: Dict[str, Any]) -> Dict[str, Any]:
        node = copy.deepcopy(node)
        if node.get("type") == "object":
            properties = {k: _strict(v) for k, v in node.get("properties", {}).items()}
            node["properties"] = properties
            node["required"] = list(properties)
            node["additionalProperties"] = False
        elif node.get("type") == "array" and "items" in node:
            node["items"] = _strict(node["items"])
        return node

    root = schema
    if schema.get("type") != "object":
        root = {
            "type": "object",
            "properties": {WRAPPED_ITEMS_KEY: schema},
            "required": [WRAPPED_ITEMS_KEY],
        }
    return _strict(root)


def to_gemini_schema(schema: Dict[str, Any]) -> Dict[str, Any]:
    """Convert a JSON schema into the Gemini responseSchema dialect."""
    node: Dict[str, Any] = {}
    for key, value in schema.items():
        if key == "type":
            node["type"] = str(value).upper()
        elif key == "properties":
            node["properties"] = {k: to_gemini_schema(v) for k, v in value.items()}
        elif key == "items":
            node["items"] = to_gemini_schema(value)
        elif key == "additionalProperties":
            continue
        else:
            node[key] = copy.deepcopy(value)
    return node
