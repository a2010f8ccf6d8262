"""Architectural boundary tests enforcing layer dependency rules.

Layer dependency direction (allowed):
  server → messaging → session → logic
  messaging → logic
  game → shared

Forbidden (runtime imports):
  logic → session, messaging, server, shared
  session → server
  shared → game
"""

import ast
from pathlib import Path

_GAME_ROOT = Path(__file__).resolve().parents[2]
_SHARED_ROOT = _GAME_ROOT.parent / "shared"


def _collect_runtime_import_targets(source_dir: Path) -> list[tuple[str, int, str]]:
    """Parse all .py files and return (filename, lineno, module) for runtime imports.

    Imports inside `if TYPE_CHECKING:` blocks are type-only
    and do not create runtime layer coupling.
    """
    results: list[tuple[str, int, str]] = []
    for py_file in source_dir.rglob("*.py"):
        tree = ast.parse(py_file.read_text(), filename=str(py_file))
        type_checking_ranges = _find_type_checking_ranges(tree)
        for node in ast.walk(tree):
            if not isinstance(node, (ast.Import, ast.ImportFrom)):
                continue
            if any(start <= node.lineno <= end for start, end in type_checking_ranges):
                continue
            if isinstance(node, ast.Import):
                results.extend((py_file.name, node.lineno, alias.name) for alias in node.names)
            elif node.module is not None:
                results.append((py_file.name, node.lineno, node.module))
    return results


def _find_type_checking_ranges(tree: ast.Module) -> list[tuple[int, int]]:
    """Find line ranges of `if TYPE_CHECKING:` blocks."""
    ranges: list[tuple[int, int]] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.If) and isinstance(node.test, ast.Name) and node.test.id == "TYPE_CHECKING":
            start = node.lineno
            end = max(child.lineno for child in ast.walk(node) if hasattr(child, "lineno"))
            ranges.append((start, end))
    return ranges


def _violations(source_dir: Path, forbidden: tuple[str, ...]) -> list[str]:
    return [
        f"{name}:{lineno} {module}"
        for name, lineno, module in _collect_runtime_import_targets(source_dir)
        if module.startswith(forbidden)
    ]


def test_game_logic_is_self_contained():
    """Resolution rules know nothing about sessions, the wire or storage."""
    violations = _violations(_GAME_ROOT / "logic", ("game.session", "game.messaging", "game.server", "shared"))
    assert violations == [], f"game.logic imports outer layers: {violations}"


def test_session_does_not_import_server():
    """game.session must not import from game.server (layer boundary)."""
    violations = _violations(_GAME_ROOT / "session", ("game.server",))
    assert violations == [], f"game.session imports from game.server: {violations}"


def test_shared_does_not_import_game():
    """The accounts/ledger layer is usable without the game server."""
    violations = _violations(_SHARED_ROOT, ("game",))
    assert violations == [], f"shared imports from game: {violations}"
