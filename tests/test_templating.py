"""Tests for prompt template variables."""

import logging

import pytest
from pydantic import BaseModel, ValidationError

from promptrun.templating import (
    extract_prompt_variables,
    parse_prompt_variables,
    process_prompt_with_inputs,
    validate_inputs,
)


class Customer(BaseModel):
    name: str
    email: str


class SupportInputs(BaseModel):
    customer: Customer
    priority: int
    vip: bool = False


class TestExtractPromptVariables:
    """Tests for extract_prompt_variables."""

    def test_unique_in_order(self):
        prompt = "Hi {{name}}! {{customer.email}} wrote about {{topic}}. Thanks {{name}}."
        assert extract_prompt_variables(prompt) == ["name", "customer.email", "topic"]

    def test_no_variables(self):
        assert extract_prompt_variables("Plain text") == []


class TestParsePromptVariables:
    """Tests for parse_prompt_variables."""

    def test_replaces_known(self):
        assert parse_prompt_variables("Hello {{name}}", {"name": "Ada"}) == "Hello Ada"

    def test_keeps_unknown_and_dotted(self):
        prompt = "{{greeting}} {{user.name}}"
        assert parse_prompt_variables(prompt, {"user": "x"}) == prompt


class TestProcessPromptWithInputs:
    """Tests for process_prompt_with_inputs."""

    def test_nested_values(self):
        prompt = "Ticket from {{customer.name}} <{{customer.email}}>, priority {{priority}}"
        inputs = {"customer": {"name": "Ada", "email": "ada@example.com"}, "priority": 2}

        assert process_prompt_with_inputs(prompt, inputs) == (
            "Ticket from Ada <ada@example.com>, priority 2"
        )

    def test_pydantic_inputs(self):
        inputs = SupportInputs(customer=Customer(name="Ada", email="a@b.c"), priority=1, vip=True)
        result = process_prompt_with_inputs(
            "{{customer.name}} vip={{vip}}",
            {"customer": inputs.customer, "vip": inputs.vip},
        )
        assert result == "Ada vip=true"

    def test_list_index(self):
        result = process_prompt_with_inputs("First tag: {{tags.0}}", {"tags": ["billing", "urgent"]})
        assert result == "First tag: billing"

    def test_missing_variables_are_kept(self, caplog):
        with caplog.at_level(logging.WARNING):
            result = process_prompt_with_inputs("Hi {{name}} from {{company}}", {"name": "Ada"})

        assert result == "Hi Ada from {{company}}"
        assert "company" in caplog.text

    def test_explicit_variable_list(self):
        result = process_prompt_with_inputs("{{a}} {{b}}", {"a": 1, "b": 2}, variables=["a"])
        assert result == "1 {{b}}"


class TestValidateInputs:
    """Tests for validate_inputs."""

    def test_valid(self):
        validated = validate_inputs(
            {"customer": {"name": "Ada", "email": "a@b.c"}, "priority": "3"},
            SupportInputs,
        )
        assert validated.priority == 3
        assert validated.customer.name == "Ada"

    def test_invalid(self):
        with pytest.raises(ValidationError):
            validate_inputs({"customer": {"name": "Ada"}, "priority": "high"}, SupportInputs)
