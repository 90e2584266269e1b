import ast
import pathlib

FORBIDDEN = (".infrastructure", "sqlalchemy", "httpx", "src.workers")


def _imports(path: pathlib.Path):
    tree = ast.parse(path.read_text(encoding="utf-8"))
    for node in ast.walk(tree):
        if isinstance(node, ast.ImportFrom) and node.module:
            yield node.module
        elif isinstance(node, ast.Import):
            for n in node.names:
                yield n.name


def test_no_infrastructure_imports_in_domain():
    root = pathlib.Path(__file__).resolve().parents[2] / "src" / "lifecycle" / "domain"
    files = list(root.glob("**/*.py"))
    assert files
    for py in files:
        for module in _imports(py):
            if any(marker in module for marker in FORBIDDEN):
                raise AssertionError(f"Infrastructure import in domain file: {py} -> {module}")


def test_no_workers_imports_in_application():
    root = pathlib.Path(__file__).resolve().parents[2] / "src" / "lifecycle" / "application"
    for py in root.glob("**/*.py"):
        for module in _imports(py):
            if module.startswith("src.workers") or "lifecycle.infrastructure" in module:
                raise AssertionError(f"Outer-layer import in application file: {py} -> {module}")
