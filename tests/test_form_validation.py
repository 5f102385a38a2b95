"""Tests for the spam/gibberish form filters."""
import pytest

from devello.utils.form_validation import (
    is_gibberish,
    is_valid_email,
    is_valid_message,
    is_valid_name,
    is_valid_subject,
    validate_form_fields,
    validate_honeypot,
)

REAL_MESSAGE = "I would like a quote for three windows"


class TestIsGibberish:
    @pytest.mark.parametrize(
        "text",
        [
            "asdfasdf qwerty",
            "aaaaaaaaaa hello there",
            "hahahahaha this is funny",
            "bcdfgh klmnpq rstvwx",
        ],
    )
    def test_flags_spam_text(self, text):
        assert is_gibberish(text, 1) is True

    def test_random_mixed_case_name(self):
        assert is_gibberish("xKqPzLmWvR", 1, True) is True

    def test_accepts_real_sentence(self):
        assert is_gibberish(REAL_MESSAGE, 5) is False

    def test_too_few_words(self):
        assert is_gibberish("hello there friend", 5) is True

    def test_empty_and_non_string(self):
        assert is_gibberish("", 1) is True
        assert is_gibberish(None, 1) is True
        assert is_gibberish(12345, 1) is True


class TestFieldValidators:
    @pytest.mark.parametrize("name", ["Jane Doe", "Mary-Ann O'Neil", "Christopher Schmidt"])
    def test_real_names_pass(self, name):
        assert is_valid_name(name).valid

    def test_name_errors(self):
        assert is_valid_name(None).error == "Name is required"
        assert is_valid_name("J").error == "Name must be at least 2 characters"
        assert is_valid_name("12345").error == "Name must contain letters"
        assert is_valid_name("x" * 101).error == "Name is too long"

    @pytest.mark.parametrize("name", ["JEAN-PIERRE-LOUIS", "MARY-ANN O'NEIL", "Jean Beauchamp-Delacroix"])
    def test_all_caps_and_hyphenated_names_pass(self, name):
        assert is_valid_name(name).valid

    def test_digits_are_not_special_characters(self):
        assert is_valid_name("Unit 1234").valid

    def test_too_many_special_characters(self):
        assert is_valid_name("J@n#e$!").error == "Name contains too many special characters"

    def test_gibberish_name(self):
        result = is_valid_name("xKqPzLmWvR")
        assert not result.valid
        assert "real name" in result.error

    def test_subject(self):
        assert is_valid_subject("Quote for new windows").valid
        assert is_valid_subject("Hi").error == "Subject must be at least 3 characters"

    def test_message(self):
        assert is_valid_message(REAL_MESSAGE).valid
        assert is_valid_message("too short").error == "Message must be at least 20 characters"
        assert is_valid_message("windows windows windows windows", min_words=5).error == (
            "Message must contain at least 5 words"
        )

    def test_email(self):
        assert is_valid_email("Jane@Doe.com ").valid
        assert is_valid_email("not-an-email").error == "Invalid email format"
        assert is_valid_email("").error == "Email is required"

    def test_suspicious_email_is_only_logged(self, caplog):
        assert is_valid_email("abcdefghijkl@test.com").valid
        assert "Suspicious email" in caplog.text

    def test_honeypot(self):
        assert validate_honeypot(None).valid
        assert validate_honeypot("  ").valid
        assert validate_honeypot("http://spam.example").error == "Spam detected"


class TestValidateFormFields:
    def test_valid_payload(self):
        result = validate_form_fields({"name": "Jane Doe", "email": "jane@doe.com", "message": REAL_MESSAGE})
        assert result.valid
        assert result.errors == {}

    def test_message_error_reported_twice(self):
        result = validate_form_fields({"name": "Jane Doe", "email": "jane@doe.com", "message": "short"})
        assert not result.valid
        assert result.errors["message"] == result.errors["description"]

    def test_description_counts_as_message(self):
        result = validate_form_fields({"name": "Jane Doe", "email": "jane@doe.com", "description": REAL_MESSAGE})
        assert result.valid

    def test_honeypot_error_comes_first(self):
        result = validate_form_fields(
            {"website": "bot.example", "name": "J", "email": "jane@doe.com", "message": REAL_MESSAGE}
        )
        assert result.first_error == "Spam detected"
        assert list(result.errors) == ["website", "name"]

    def test_missing_message_fields_are_skipped(self):
        result = validate_form_fields({"name": "Jane Doe", "email": "jane@doe.com"})
        assert result.valid

    def test_subject_only_checked_when_present(self):
        fields = {"name": "Jane Doe", "email": "jane@doe.com", "message": REAL_MESSAGE}
        assert validate_form_fields(fields, require_subject=True).valid
        fields["subject"] = "Hi"
        assert validate_form_fields(fields, require_subject=True).errors == {
            "subject": "Subject must be at least 3 characters"
        }
