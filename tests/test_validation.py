"""Tests for the validation module."""

import pytest

from cursor_chat_recovery.scanner.validation import (
    is_chat_data,
    is_numeric_key_object,
    is_plausible_chat_payload,
    is_prompt,
)


class TestIsPlausibleChatPayload:
    """Tests for is_plausible_chat_payload()."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (None, False),
            ([], True),
            ([{"text": "hi"}], True),
            ({}, True),
            ({"messages": []}, True),
            ({"0": {"text": "a"}, "1": {"text": "b"}}, True),
            ({"theme": "dark", "fontSize": 14}, False),
            ("x" * 151, True),
            ("x" * 150, False),
            ("short", False),
            (42, False),
            (3.14, False),
            (True, False),
            (False, False),
        ],
    )
    def test_documented_shapes(self, value, expected):
        """Test every documented shape returns the documented verdict."""
        assert is_plausible_chat_payload(value) is expected

    @pytest.mark.parametrize("key", ["Messages", "HISTORY", "conversations", "Prompts"])
    def test_collection_keys_are_case_insensitive(self, key):
        assert is_plausible_chat_payload({key: None, "other": 1}) is True

    def test_numeric_key_mixed_with_other_keys(self):
        """Test that a single integer-string key is enough."""
        assert is_plausible_chat_payload({"7": "x", "label": "y"}) is True

    def test_negative_number_key_rejected(self):
        assert is_plausible_chat_payload({"-1": "x"}) is False


class TestIsChatData:
    """Tests for is_chat_data()."""

    @pytest.mark.parametrize("field", ["messages", "chunks", "parts", "conversation", "entries", "conversations"])
    def test_array_fields(self, field):
        assert is_chat_data({field: []}) is True

    def test_non_array_field(self):
        assert is_chat_data({"messages": "not a list"}) is False

    def test_nested_chat_data(self):
        """Test that a chatData wrapper is unwrapped."""
        assert is_chat_data({"chatData": {"conversation": [{"message": "hi"}]}}) is True

    def test_nested_chat_data_without_collection(self):
        assert is_chat_data({"chatData": {"tabs": 3}, "messages": []}) is False

    def test_prompt_list_is_not_chat_data(self):
        """Test that a bare list of prompts is not a transcript."""
        assert is_chat_data([{"text": "hi"}]) is False

    def test_history_is_not_rich(self):
        assert is_chat_data({"history": [{"text": "hi"}]}) is False


class TestPromptHelpers:
    """Tests for is_prompt() and is_numeric_key_object()."""

    def test_is_prompt(self):
        assert is_prompt({"text": "Refactor this", "commandType": 4}) is True
        assert is_prompt({"text": "   "}) is False
        assert is_prompt({"content": "hi"}) is False
        assert is_prompt("text") is False

    def test_is_numeric_key_object(self):
        assert is_numeric_key_object({"0": {}, "1": {}, "10": {}}) is True
        assert is_numeric_key_object({"0": {}, "name": "x"}) is False
        assert is_numeric_key_object({}) is False
        assert is_numeric_key_object([{"0": 1}]) is False
