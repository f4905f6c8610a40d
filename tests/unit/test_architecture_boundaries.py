import ast
import pytest
from pathlib import Path


def _imported_modules(py_file: Path):
    tree = ast.parse(py_file.read_text(encoding="utf-8"), filename=str(py_file))
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                yield node.lineno, alias.name
        elif isinstance(node, ast.ImportFrom):
            yield node.lineno, node.module or ""


@pytest.mark.parametrize("layer, forbidden", [
    ("pipeline", ("hbwatch.ui",)),
    ("domain", ("hbwatch.ui", "hbwatch.pipeline", "hbwatch.infrastructure")),
])
def test_layer_does_not_import_upper_layers(layer, forbidden):
    """Pipeline must not import the UI layer; domain must not import anything above it."""
    repo_root = Path(__file__).resolve().parents[2]
    layer_dir = repo_root / "hbwatch" / layer

    violations = []
    for py_file in layer_dir.rglob("*.py"):
        rel_path = py_file.relative_to(repo_root)
        for lineno, name in _imported_modules(py_file):
            if any(name == prefix or name.startswith(prefix + ".") for prefix in forbidden):
                violations.append(f"{rel_path}:{lineno} imports {name}")

    assert not violations, f"{layer} layer imports a forbidden layer:\n" + "\n".join(violations)
