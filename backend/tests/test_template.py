from domain.services.template import extract_variables, fill_template, has_variables

def test_extract_variables_order_and_dedupe():
    content = "Hi {name}, {item} for { name }. {item}"
    assert extract_variables(content) == ["name", "item"]

def test_extract_variables_includes_empty_braces():
    assert extract_variables("a {} b") == [""]

def test_extract_variables_ignores_nested():
    # 内側の {b} だけが変数
    assert extract_variables("{a{b}c}") == ["b"]

def test_fill_template_with_empty_values_is_identity():
    content = "Hello {name}, your {item} is ready"
    assert fill_template(content, {}) == content

def test_fill_template_keeps_unfilled_variable():
    content = "Hello {name}, your {item} is ready"
    result = fill_template(content, {"name": "Alice", "item": ""})
    assert result == "Hello Alice, your {item} is ready"

def test_fill_template_whitespace_only_value_is_unfilled():
    assert fill_template("{x}", {"x": "   "}) == "{x}"

def test_fill_template_trims_values_and_names():
    assert fill_template("[{ lang }]", {"lang": "  Python "}) == "[Python]"

def test_fully_filled_template_has_no_variables():
    content = "Write {lang} code for {task}. Use {lang}."
    values = {name: f"value-{i}" for i, name in enumerate(extract_variables(content))}
    filled = fill_template(content, values)
    assert extract_variables(filled) == []
    assert not has_variables(filled)
    assert filled == "Write value-0 code for value-1. Use value-0."

def test_has_variables():
    assert has_variables("{x}")
    assert not has_variables("no placeholders")
