"""Validates rendered test code for syntax and structural correctness."""

import ast


def validate_block(code: str, name: str = "<generated>") -> str | None:
    """Check one rendered test block.

    Returns an error message, or None when the block is a single valid
    function definition.
    """
    if not code.strip():
        return "empty block"
    try:
        tree = ast.parse(code, filename=name)
    except SyntaxError as e:
        return f"SyntaxError: {e.msg} (line {e.lineno})"

    functions = [node for node in tree.body if isinstance(node, ast.FunctionDef)]
    if len(functions) != 1 or len(tree.body) != 1:
        return "expected exactly one test function"
    return None


def validate_python(files: dict[str, str]) -> dict[str, str]:
    """Check Python files for syntax errors.

    Returns dict of {filename: error_message} for files with errors.
    """
    errors = {}
    for filename, content in files.items():
        if not filename.endswith(".py"):
            continue
        if not content.strip():
            continue
        try:
            ast.parse(content, filename=filename)
        except SyntaxError as e:
            errors[filename] = f"SyntaxError: {e.msg} (line {e.lineno})"
    return errors
