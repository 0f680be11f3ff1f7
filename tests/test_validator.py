from api_test_orchestrator.generator.validator import validate_block, validate_python


class TestValidateBlock:
    def test_valid_block(self):
        assert validate_block("def test_x(base_url):\n    assert True\n") is None

    def test_empty_block(self):
        assert validate_block("   \n") == "empty block"

    def test_syntax_error(self):
        error = validate_block("def test_x(:\n    pass\n")
        assert error.startswith("SyntaxError")

    def test_more_than_one_function(self):
        code = "def test_a():\n    pass\n\ndef test_b():\n    pass\n"
        assert validate_block(code) == "expected exactly one test function"

    def test_statement_outside_function(self):
        assert validate_block("import os\ndef test_a():\n    pass\n") == "expected exactly one test function"


class TestValidatePython:
    def test_valid_python(self):
        files = {"test_ok.py": "def test_foo():\n    assert True\n"}
        assert validate_python(files) == {}

    def test_invalid_python(self):
        files = {"test_bad.py": "def test_foo(\n    assert True\n"}
        errors = validate_python(files)
        assert "test_bad.py" in errors

    def test_non_python_and_empty_files_are_skipped(self):
        assert validate_python({"README.md": "def (", "empty.py": "   "}) == {}
